from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from ticketrank.core.config import RankingConfig
from ticketrank.embeddings.errors import ProviderResponseError
from ticketrank.embeddings.fetcher import BatchEmbeddingFetcher, restore_request_order
from ticketrank.embeddings.provider import IndexedEmbedding
from ticketrank.embeddings.store import TieredEmbeddingStore
from ticketrank.metrics.definitions import BATCH_FALLBACKS, DURABLE_FAILURES


@pytest.fixture
def store(provider, durable, registry):
    return TieredEmbeddingStore(provider, durable=durable, metrics=registry)


def test_restore_request_order_places_items_by_index():
    items = [IndexedEmbedding(index=1, embedding=[2.0]), IndexedEmbedding(index=0, embedding=[1.0])]

    assert restore_request_order(items, 2) == [[1.0], [2.0]]


def test_restore_request_order_takes_plain_vectors_positionally():
    assert restore_request_order([[1.0], [2.0]], 2) == [[1.0], [2.0]]


@pytest.mark.parametrize(
    "items",
    [
        [IndexedEmbedding(index=0, embedding=[1.0])],
        [IndexedEmbedding(index=0, embedding=[1.0]), IndexedEmbedding(index=0, embedding=[2.0])],
        [IndexedEmbedding(index=0, embedding=[1.0]), IndexedEmbedding(index=5, embedding=[2.0])],
        [IndexedEmbedding(index=0, embedding=[1.0]), [2.0]],
    ],
)
def test_restore_request_order_rejects_inconsistent_batches(items):
    with pytest.raises(ProviderResponseError):
        restore_request_order(items, 2)


@pytest.mark.asyncio
async def test_results_follow_request_order_when_provider_reorders(provider, store, make_ticket):
    provider.vectors = {"T-1": [1.0, 0.0], "T-2": [0.0, 1.0], "T-3": [1.0, 1.0]}
    tickets = [make_ticket("1"), make_ticket("2"), make_ticket("3")]

    result = await BatchEmbeddingFetcher(store).resolve_many(tickets)

    assert result == {"1": [1.0, 0.0], "2": [0.0, 1.0], "3": [1.0, 1.0]}
    assert len(provider.batch_calls) == 1
    assert store.cache.get("2") == [0.0, 1.0]


@pytest.mark.asyncio
async def test_only_missing_tickets_are_sent(provider, store, make_ticket):
    tickets = [make_ticket("1", embedding=[0.3, 0.4]), make_ticket("2"), make_ticket("2")]

    result = await BatchEmbeddingFetcher(store).resolve_many(tickets)

    assert set(result) == {"1", "2"}
    assert result["1"] == [0.3, 0.4]
    assert provider.batch_calls == [["T-2: Ticket 2"]]


@pytest.mark.asyncio
async def test_fully_cached_input_issues_no_requests(provider, store, make_ticket):
    store.cache.set("1", [1.0])

    result = await BatchEmbeddingFetcher(store).resolve_many([make_ticket("1")])

    assert result == {"1": [1.0]}
    assert provider.batch_calls == []


@pytest.mark.asyncio
async def test_batches_over_token_budget_are_split(provider, store, make_ticket):
    tickets = [make_ticket(str(i), description="x" * 3000) for i in range(4)]
    fetcher = BatchEmbeddingFetcher(store, RankingConfig(token_limit=1600))

    result = await fetcher.resolve_many(tickets)

    assert len(result) == 4
    assert [len(call) for call in provider.batch_calls] == [2, 2]


@pytest.mark.asyncio
async def test_failed_batch_falls_back_per_ticket_and_isolates_failures(provider, store, registry, make_ticket):
    provider.fail_batches = True
    provider.fail_keys = {"T-2"}
    tickets = [make_ticket("1"), make_ticket("2"), make_ticket("3")]

    result = await BatchEmbeddingFetcher(store).resolve_many(tickets)

    assert set(result) == {"1", "3"}
    assert len(provider.one_calls) == 3
    assert registry.counter(BATCH_FALLBACKS).value() == 1


@pytest.mark.asyncio
async def test_windows_bound_concurrent_requests(provider, store, make_ticket):
    tickets = [make_ticket(str(i)) for i in range(7)]
    fetcher = BatchEmbeddingFetcher(store, RankingConfig(batch_size=2, concurrency=3))

    result = await fetcher.resolve_many(tickets)

    assert len(result) == 7
    assert len(provider.batch_calls) == 4
    assert provider.max_in_flight == 3


@pytest.mark.asyncio
async def test_generated_embeddings_are_persisted(provider, store, durable, make_ticket):
    await BatchEmbeddingFetcher(store).resolve_many([make_ticket("1"), make_ticket("2")])
    await store.flush()

    assert set(durable.data) == {"1", "2"}


@pytest.mark.asyncio
async def test_rejects_non_positive_batch_size(store, make_ticket):
    with pytest.raises(ValueError):
        await BatchEmbeddingFetcher(store).resolve_many([make_ticket("1")], batch_size=-1)
    with pytest.raises(ValueError):
        await BatchEmbeddingFetcher(store).resolve_many([make_ticket("1")], batch_size=0)
    with pytest.raises(ValueError):
        await BatchEmbeddingFetcher(store).resolve_many([make_ticket("1")], concurrency=0)


@pytest.mark.asyncio
async def test_plain_vector_batches_are_taken_in_request_order(provider, store, make_ticket):
    provider.plain_batches = True
    provider.vectors = {"T-1": [1.0, 0.0], "T-2": [0.0, 1.0]}

    result = await BatchEmbeddingFetcher(store).resolve_many([make_ticket("1"), make_ticket("2")])

    assert result == {"1": [1.0, 0.0], "2": [0.0, 1.0]}
    assert provider.one_calls == []


@pytest.mark.asyncio
async def test_unexpected_batch_error_falls_back_per_ticket(provider, store, registry, make_ticket):
    provider.embed_batch = AsyncMock(side_effect=RuntimeError("unparseable batch payload"))

    result = await BatchEmbeddingFetcher(store).resolve_many([make_ticket("1"), make_ticket("2")])

    assert set(result) == {"1", "2"}
    assert len(provider.one_calls) == 2
    assert registry.counter(BATCH_FALLBACKS).value() == 1


@pytest.mark.asyncio
async def test_durable_write_failure_is_isolated_to_its_ticket(provider, store, durable, registry, make_ticket):
    durable.fail_put_ids = {"2"}
    tickets = [make_ticket("1"), make_ticket("2"), make_ticket("3")]

    result = await BatchEmbeddingFetcher(store).resolve_many(tickets)
    await store.flush()

    assert set(result) == {"1", "2", "3"}
    assert all(ticket_id in store.cache for ticket_id in ("1", "2", "3"))
    assert set(durable.data) == {"1", "3"}
    assert registry.counter(DURABLE_FAILURES).value(labels={"operation": "put"}) == 1
