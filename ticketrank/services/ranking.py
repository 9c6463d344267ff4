from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ticketrank.core.config import ProviderConfig, Settings
from ticketrank.embeddings.durable import DurableEmbeddingStore
from ticketrank.embeddings.fetcher import BatchEmbeddingFetcher
from ticketrank.embeddings.provider import OpenAIEmbeddingProvider
from ticketrank.embeddings.store import TieredEmbeddingStore
from ticketrank.metrics import MetricsRegistry
from ticketrank.ranking.orders import SortOrder, sort_tickets
from ticketrank.ranking.ranker import TicketRanker
from ticketrank.tickets.changes import ContentChangeDetector
from ticketrank.tickets.models import Ticket

from .availability import AvailabilityProbe, ProbeResult

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RankingService:
    """Application-level facade over ranking, probing and cache maintenance."""

    ranker: TicketRanker
    provider_config: ProviderConfig | None = None
    store: TieredEmbeddingStore | None = None
    provider: OpenAIEmbeddingProvider | None = None
    availability: AvailabilityProbe = field(default_factory=AvailabilityProbe)

    async def rank(
        self,
        tickets: Iterable[Ticket],
        *,
        owner: str | None = None,
        order: SortOrder = SortOrder.DEFAULT,
        similarity_enabled: bool | None = None,
    ) -> list[Ticket]:
        return await sort_tickets(
            tickets,
            order,
            ranker=self.ranker,
            owner_identifier=owner,
            similarity_enabled=similarity_enabled,
        )

    async def check_availability(self) -> ProbeResult:
        return await self.availability.probe(self.provider_config)

    async def invalidate(self, ticket_id: str) -> None:
        if self.store is not None:
            await self.store.invalidate(ticket_id)

    def clear_cache(self) -> None:
        if self.store is not None:
            self.store.clear()

    async def reconcile(self, previous_by_id: Mapping[str, Ticket], current: Iterable[Ticket]) -> list[Ticket]:
        """Carry embeddings over a sync, invalidating tickets whose content changed."""

        if self.store is None:
            return list(current)
        return await ContentChangeDetector(self.store).reconcile_many(previous_by_id, current)

    async def aclose(self) -> None:
        if self.store is not None:
            await self.store.flush()
        if self.provider is not None:
            await self.provider.aclose()


def build_ranking_service(
    settings: Settings,
    *,
    durable: DurableEmbeddingStore | None = None,
    metrics: MetricsRegistry | None = None,
) -> RankingService:
    """Wire provider, cache tiers, fetcher and ranker from ``settings``."""

    provider_config = settings.provider_config()
    ranking_config = settings.ranking_config()
    if provider_config is None:
        logger.info("No embedding provider configured; similarity ranking disabled")
        return RankingService(ranker=TicketRanker(config=ranking_config, metrics=metrics))

    provider = OpenAIEmbeddingProvider(provider_config)
    store = TieredEmbeddingStore(provider, durable=durable, metrics=metrics)
    fetcher = BatchEmbeddingFetcher(store, ranking_config)
    return RankingService(
        ranker=TicketRanker(fetcher, ranking_config, metrics=metrics),
        provider_config=provider_config,
        store=store,
        provider=provider,
    )
