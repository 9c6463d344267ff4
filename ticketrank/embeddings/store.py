"""Get-or-generate resolution of ticket embeddings across cache tiers."""
from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from ticketrank.metrics import MetricsRegistry, metrics_registry as default_metrics_registry
from ticketrank.metrics import register_default_metrics
from ticketrank.metrics.definitions import (
    CACHE_LOOKUPS,
    DURABLE_FAILURES,
    INVALIDATIONS,
    PROVIDER_FAILURES,
    PROVIDER_REQUESTS,
)
from ticketrank.tickets.models import Ticket, ticket_text

from .cache import EmbeddingCache
from .durable import DurableEmbeddingStore, NullEmbeddingStore
from .errors import EmbeddingProviderError
from .provider import EmbeddingProvider
from .vectors import Embedding

logger = logging.getLogger(__name__)


class TieredEmbeddingStore:
    """Resolve embeddings from memory, the ticket itself, the durable tier, then the provider.

    The in-memory tier is authoritative for the session. Durable writes run as
    background tasks whose failures are logged and counted but never reach the
    caller; :meth:`flush` waits for the ones still pending.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        *,
        cache: EmbeddingCache | None = None,
        durable: DurableEmbeddingStore | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.provider = provider
        self.cache = cache if cache is not None else EmbeddingCache()
        self.durable = durable if durable is not None else NullEmbeddingStore()
        self.metrics = register_default_metrics(metrics or default_metrics_registry)
        self._pending: set[asyncio.Task[None]] = set()

    async def lookup(self, ticket: Ticket) -> Embedding | None:
        """Resolve ``ticket`` from the non-generative tiers only."""

        cached = self.cache.get(ticket.id)
        if cached is not None:
            self._count_lookup("memory")
            return cached

        if ticket.embedding:
            embedding = list(ticket.embedding)
            self.cache.set(ticket.id, embedding)
            self._count_lookup("ticket")
            return embedding

        try:
            stored = await self.durable.get(ticket.id)
        except Exception as exc:
            logger.warning("Durable embedding read failed for %s: %s", ticket.key, exc)
            self.metrics.counter(DURABLE_FAILURES).inc(labels={"operation": "get"})
            stored = None
        if stored:
            embedding = list(stored)
            self.cache.set(ticket.id, embedding)
            self._count_lookup("durable")
            return embedding

        self._count_lookup("miss")
        return None

    async def resolve(self, ticket: Ticket) -> Embedding:
        """Return the embedding for ``ticket``, generating it when no tier has one.

        Raises :class:`EmbeddingProviderError` when generation fails.
        """

        embedding = await self.lookup(ticket)
        if embedding is not None:
            return embedding

        self.metrics.counter(PROVIDER_REQUESTS).inc(labels={"operation": "one"})
        try:
            embedding = list(await self.provider.embed_one(ticket_text(ticket)))
        except EmbeddingProviderError:
            self.metrics.counter(PROVIDER_FAILURES).inc(labels={"operation": "one"})
            raise
        self.remember(ticket.id, embedding)
        return embedding

    def remember(self, ticket_id: str, embedding: Sequence[float]) -> Embedding:
        """Store a freshly generated embedding in memory and schedule its durable write."""

        value = list(embedding)
        self.cache.set(ticket_id, value)
        task = asyncio.get_running_loop().create_task(self._persist(ticket_id, value))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return value

    async def _persist(self, ticket_id: str, embedding: Embedding) -> None:
        try:
            await self.durable.put(ticket_id, embedding)
        except Exception as exc:
            logger.error("Failed to persist embedding for ticket %s: %s", ticket_id, exc)
            self.metrics.counter(DURABLE_FAILURES).inc(labels={"operation": "put"})

    async def invalidate(self, ticket_id: str) -> None:
        """Forget ``ticket_id`` in both tiers so the next resolution regenerates."""

        self.cache.discard(ticket_id)
        self.metrics.counter(INVALIDATIONS).inc()
        # a write still in flight would resurrect the stale vector
        await self.flush()
        try:
            await self.durable.delete(ticket_id)
        except Exception as exc:
            logger.error("Failed to delete durable embedding for ticket %s: %s", ticket_id, exc)
            self.metrics.counter(DURABLE_FAILURES).inc(labels={"operation": "delete"})

    def clear(self) -> None:
        """Drop the whole in-memory tier."""

        self.cache.clear()

    async def flush(self) -> None:
        """Wait until every scheduled durable write has finished."""

        while self._pending:
            await asyncio.gather(*tuple(self._pending))

    @property
    def pending_writes(self) -> int:
        return len(self._pending)

    def _count_lookup(self, tier: str) -> None:
        self.metrics.counter(CACHE_LOOKUPS).inc(labels={"tier": tier})
