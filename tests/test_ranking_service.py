from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from ticketrank.core.config import Settings
from ticketrank.embeddings.store import TieredEmbeddingStore
from ticketrank.metrics import MetricsRegistry
from ticketrank.ranking.orders import SortOrder
from ticketrank.ranking.ranker import TicketRanker
from ticketrank.services.availability import ProbeReason
from ticketrank.services.ranking import RankingService, build_ranking_service


@pytest.mark.asyncio
async def test_service_without_provider_ranks_without_similarity(make_ticket):
    service = build_ranking_service(Settings(_env_file=None, llm_api_key=None), metrics=MetricsRegistry())

    assert service.store is None
    assert service.provider is None

    ranked = await service.rank(
        [make_ticket("other", created=3), make_ticket("mine", assignee="Alice")],
        owner="alice",
        similarity_enabled=True,
    )

    assert [ticket.id for ticket in ranked] == ["mine", "other"]
    assert (await service.check_availability()).reason is ProbeReason.UNCONFIGURED


@pytest.mark.asyncio
async def test_service_with_provider_wires_store_and_fetcher(durable):
    service = build_ranking_service(
        Settings(_env_file=None, llm_api_key="sk-test"), durable=durable, metrics=MetricsRegistry()
    )

    assert service.store is not None
    assert service.store.durable is durable
    assert service.ranker.fetcher is not None
    assert service.provider_config.api_key == "sk-test"
    await service.aclose()


@pytest.mark.asyncio
async def test_invalidate_and_clear_reach_the_store(provider, durable, registry):
    store = TieredEmbeddingStore(provider, durable=durable, metrics=registry)
    service = RankingService(ranker=TicketRanker(metrics=registry), store=store)
    store.cache.set("1", [1.0])
    store.cache.set("2", [2.0])
    durable.data["1"] = [1.0]

    await service.invalidate("1")
    assert "1" not in store.cache
    assert "1" not in durable.data

    service.clear_cache()
    assert len(store.cache) == 0


@pytest.mark.asyncio
async def test_reconcile_invalidates_changed_tickets(provider, registry, make_ticket):
    store = TieredEmbeddingStore(provider, metrics=registry)
    store.cache.set("1", [1.0])
    service = RankingService(ranker=TicketRanker(metrics=registry), store=store)

    reconciled = await service.reconcile({"1": make_ticket("1")}, [make_ticket("1", summary="Changed")])

    assert reconciled[0].embedding is None
    assert "1" not in store.cache


@pytest.mark.asyncio
async def test_rank_passes_order_through(make_ticket):
    service = RankingService(ranker=AsyncMock())
    tickets = [make_ticket("b"), make_ticket("a")]

    ranked = await service.rank(tickets, order=SortOrder.ALPHABETICAL)

    assert [ticket.key for ticket in ranked] == ["T-a", "T-b"]
    service.ranker.rank.assert_not_awaited()
