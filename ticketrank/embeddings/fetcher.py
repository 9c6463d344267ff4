"""Concurrency-bounded batch generation of ticket embeddings."""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Mapping, Sequence

from opentelemetry import trace

from ticketrank.core.config import RankingConfig
from ticketrank.metrics.definitions import BATCH_FALLBACKS, PROVIDER_FAILURES, PROVIDER_REQUESTS
from ticketrank.tickets.models import Ticket, ticket_text

from .batching import chunk, split_until_under_budget
from .errors import ProviderResponseError
from .provider import EmbeddingProvider, IndexedEmbedding
from .store import TieredEmbeddingStore
from .vectors import Embedding

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def restore_request_order(items: Sequence[object], expected: int) -> list[Embedding]:
    """Return batch results in request order.

    :class:`IndexedEmbedding` items are placed by their index, whatever order
    the provider listed them in. Plain vectors are taken positionally. The
    indices must cover ``0..expected-1`` exactly once; a batch mixing both
    shapes is rejected.
    """

    if len(items) != expected:
        raise ProviderResponseError(f"Expected {expected} embeddings, received {len(items)}")

    indexed = [item for item in items if isinstance(item, IndexedEmbedding)]
    if not indexed:
        return [list(item) for item in items]  # type: ignore[call-overload]
    if len(indexed) != expected:
        raise ProviderResponseError("Batch mixes indexed and positional embeddings")

    by_index: dict[int, Embedding] = {}
    for item in indexed:
        index = item.index
        if not 0 <= index < expected or index in by_index:
            raise ProviderResponseError(f"Unexpected embedding index {index} in batch of {expected}")
        by_index[index] = list(item.embedding)
    return [by_index[index] for index in range(expected)]


class BatchEmbeddingFetcher:
    """Resolve many tickets at once, generating misses in token-bounded batches.

    Batches run ``concurrency`` at a time; each window finishes before the
    next one starts. A failed batch falls back to per-ticket resolution and
    tickets that still fail are left out of the result.
    """

    def __init__(
        self,
        store: TieredEmbeddingStore,
        config: RankingConfig | None = None,
    ) -> None:
        self.store = store
        self.config = config or RankingConfig()

    @property
    def provider(self) -> EmbeddingProvider:
        return self.store.provider

    async def resolve_many(
        self,
        tickets: Iterable[Ticket],
        *,
        batch_size: int | None = None,
        concurrency: int | None = None,
    ) -> dict[str, Embedding]:
        if batch_size is None:
            batch_size = self.config.batch_size
        if concurrency is None:
            concurrency = self.config.concurrency
        if batch_size < 1 or concurrency < 1:
            raise ValueError("batch_size and concurrency must be positive")

        tickets = list(tickets)
        with tracer.start_as_current_span("embeddings.resolve_many") as span:
            span.set_attribute("tickets.count", len(tickets))
            results, missing = await self._partition(tickets)
            span.set_attribute("tickets.missing", len(missing))
            if not missing:
                return results

            logger.info("Generating embeddings for %d tickets", len(missing))
            batches = chunk(missing, batch_size)
            generated = 0
            for start in range(0, len(batches), concurrency):
                window = batches[start : start + concurrency]
                outcomes = await asyncio.gather(*(self._process_batch(batch) for batch in window))
                for outcome in outcomes:
                    results.update(outcome)
                    generated += len(outcome)
                logger.debug("Generated %d/%d embeddings", generated, len(missing))

            if generated < len(missing):
                logger.warning("%d tickets have no embedding after fallback", len(missing) - generated)
            return results

    async def _partition(self, tickets: Sequence[Ticket]) -> tuple[dict[str, Embedding], list[Ticket]]:
        resolved: dict[str, Embedding] = {}
        missing: list[Ticket] = []
        queued: set[str] = set()
        for ticket in tickets:
            if ticket.id in resolved or ticket.id in queued:
                continue
            embedding = await self.store.lookup(ticket)
            if embedding is not None:
                resolved[ticket.id] = embedding
            else:
                missing.append(ticket)
                queued.add(ticket.id)
        return resolved, missing

    async def _process_batch(self, batch: Sequence[Ticket]) -> Mapping[str, Embedding]:
        parts = split_until_under_budget(batch, key=ticket_text, token_limit=self.config.token_limit)
        if len(parts) > 1:
            logger.debug("Split batch of %d tickets into %d requests", len(batch), len(parts))
        outcomes = await asyncio.gather(*(self._issue(part) for part in parts))
        merged: dict[str, Embedding] = {}
        for outcome in outcomes:
            merged.update(outcome)
        return merged

    async def _issue(self, part: Sequence[Ticket]) -> Mapping[str, Embedding]:
        self.store.metrics.counter(PROVIDER_REQUESTS).inc(labels={"operation": "batch"})
        try:
            items = await self.provider.embed_batch([ticket_text(ticket) for ticket in part])
            ordered = restore_request_order(items, len(part))
        except Exception as exc:
            logger.warning("Batch embedding of %d tickets failed, falling back per ticket: %s", len(part), exc)
            self.store.metrics.counter(PROVIDER_FAILURES).inc(labels={"operation": "batch"})
            self.store.metrics.counter(BATCH_FALLBACKS).inc()
            return await self._fallback(part)

        return {ticket.id: self.store.remember(ticket.id, embedding) for ticket, embedding in zip(part, ordered)}

    async def _fallback(self, part: Sequence[Ticket]) -> Mapping[str, Embedding]:
        async def resolve_one(ticket: Ticket) -> tuple[str, Embedding | None]:
            try:
                return ticket.id, await self.store.resolve(ticket)
            except Exception as exc:
                logger.error("Failed to generate embedding for %s: %s", ticket.key, exc)
                return ticket.id, None

        pairs = await asyncio.gather(*(resolve_one(ticket) for ticket in part))
        return {ticket_id: embedding for ticket_id, embedding in pairs if embedding is not None}
