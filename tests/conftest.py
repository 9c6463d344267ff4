from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from ticketrank.embeddings.errors import ProviderRateLimitError, ProviderResponseError
from ticketrank.embeddings.provider import IndexedEmbedding
from ticketrank.metrics import MetricsRegistry
from ticketrank.tickets.models import Ticket

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeProvider:
    """In-memory provider keyed by ticket key; lists batch results in reverse."""

    def __init__(self) -> None:
        self.vectors: dict[str, list[float]] = {}
        self.default = [1.0, 0.0, 0.0]
        self.one_calls: list[str] = []
        self.batch_calls: list[list[str]] = []
        self.fail_batches = False
        self.fail_keys: set[str] = set()
        self.reverse_batches = True
        self.plain_batches = False
        self.in_flight = 0
        self.max_in_flight = 0

    def vector_for(self, text: str) -> list[float]:
        key = text.split(":", 1)[0]
        return list(self.vectors.get(key, self.default))

    async def _enter(self) -> None:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)

    async def embed_one(self, text: str) -> list[float]:
        self.one_calls.append(text)
        await self._enter()
        try:
            if text.split(":", 1)[0] in self.fail_keys:
                raise ProviderResponseError("upstream exploded", status_code=500)
            return self.vector_for(text)
        finally:
            self.in_flight -= 1

    async def embed_batch(self, texts):
        self.batch_calls.append(list(texts))
        await self._enter()
        try:
            if self.fail_batches:
                raise ProviderRateLimitError("slow down", status_code=429)
            if self.plain_batches:
                return [self.vector_for(text) for text in texts]
            items = [IndexedEmbedding(index=i, embedding=self.vector_for(text)) for i, text in enumerate(texts)]
            return list(reversed(items)) if self.reverse_batches else items
        finally:
            self.in_flight -= 1


class FakeDurableStore:
    def __init__(self) -> None:
        self.data: dict[str, list[float]] = {}
        self.fail_get = False
        self.fail_put = False
        self.fail_put_ids: set[str] = set()
        self.fail_delete = False
        self.deleted: list[str] = []

    async def get(self, ticket_id: str):
        if self.fail_get:
            raise ConnectionError("durable store unreachable")
        return self.data.get(ticket_id)

    async def put(self, ticket_id: str, embedding) -> None:
        await asyncio.sleep(0)
        if self.fail_put or ticket_id in self.fail_put_ids:
            raise ConnectionError("durable store unreachable")
        self.data[ticket_id] = list(embedding)

    async def delete(self, ticket_id: str) -> None:
        self.deleted.append(ticket_id)
        if self.fail_delete:
            raise ConnectionError("durable store unreachable")
        self.data.pop(ticket_id, None)

    async def clear(self) -> None:
        self.data.clear()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def durable() -> FakeDurableStore:
    return FakeDurableStore()


@pytest.fixture
def registry() -> MetricsRegistry:
    return MetricsRegistry()


@pytest.fixture
def make_ticket():
    """Build tickets keyed ``T-<id>``; ``created``/``updated`` are hour offsets."""

    def _make(ticket_id: str, *, summary: str | None = None, created: int = 0, updated: int | None = None, **fields):
        return Ticket(
            id=ticket_id,
            key=f"T-{ticket_id}",
            summary=summary or f"Ticket {ticket_id}",
            created=BASE_TIME + timedelta(hours=created),
            updated=BASE_TIME + timedelta(hours=created if updated is None else updated),
            **fields,
        )

    return _make
