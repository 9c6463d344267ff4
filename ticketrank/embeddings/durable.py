"""Durable embedding tier adapters.

Every adapter implements :class:`DurableEmbeddingStore`. Failures are raised
to the caller; :class:`~ticketrank.embeddings.store.TieredEmbeddingStore`
decides how to recover from them.
"""
from __future__ import annotations

import asyncio
from typing import Any, Protocol, Sequence
from uuid import NAMESPACE_URL, uuid5

import asyncpg
from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator
from qdrant_client import QdrantClient
from qdrant_client.http.models import Distance, PointIdsList, PointStruct, VectorParams

from .vectors import Embedding


class DurableEmbeddingStore(Protocol):
    async def get(self, ticket_id: str) -> Embedding | None:
        ...

    async def put(self, ticket_id: str, embedding: Sequence[float]) -> None:
        ...

    async def delete(self, ticket_id: str) -> None:
        ...

    async def clear(self) -> None:
        ...


class NullEmbeddingStore:
    """Durable tier that persists nothing; every lookup is a miss."""

    async def get(self, ticket_id: str) -> Embedding | None:
        return None

    async def put(self, ticket_id: str, embedding: Sequence[float]) -> None:
        return None

    async def delete(self, ticket_id: str) -> None:
        return None

    async def clear(self) -> None:
        return None


class PostgresEmbeddingStore:
    """Embeddings persisted in a ``ticket_embeddings`` table."""

    _CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS ticket_embeddings (
        ticket_id TEXT PRIMARY KEY,
        embedding DOUBLE PRECISION[] NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _SELECT_SQL = """
    SELECT embedding FROM ticket_embeddings WHERE ticket_id = $1
    """

    _UPSERT_SQL = """
    INSERT INTO ticket_embeddings (ticket_id, embedding)
    VALUES ($1, $2)
    ON CONFLICT (ticket_id) DO UPDATE
    SET embedding = EXCLUDED.embedding,
        updated_at = CURRENT_TIMESTAMP
    """

    _DELETE_SQL = """
    DELETE FROM ticket_embeddings WHERE ticket_id = $1
    """

    _CLEAR_SQL = """
    DELETE FROM ticket_embeddings
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CREATE_TABLE_SQL)

    async def get(self, ticket_id: str) -> Embedding | None:
        async with self._pool.acquire() as connection:
            row = await connection.fetchrow(self._SELECT_SQL, ticket_id)
        if row is None or row["embedding"] is None:
            return None
        return [float(value) for value in row["embedding"]]

    async def put(self, ticket_id: str, embedding: Sequence[float]) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._UPSERT_SQL, ticket_id, list(embedding))

    async def delete(self, ticket_id: str) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._DELETE_SQL, ticket_id)

    async def clear(self) -> None:
        async with self._pool.acquire() as connection:
            await connection.execute(self._CLEAR_SQL)


class QdrantCollectionConfig(BaseModel):
    """Collection used to persist ticket embeddings in Qdrant."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    vector_size: PositiveInt = Field(..., description="Embedding dimensionality")
    distance: Distance = Field(default=Distance.COSINE)
    on_disk_payload: bool = Field(default=True)

    @field_validator("distance", mode="before")
    @classmethod
    def _normalize_distance(cls, value: Any) -> Distance:
        if isinstance(value, Distance):
            return value
        if isinstance(value, str):
            try:
                return Distance[value.upper()]
            except KeyError as exc:
                raise ValueError(
                    f"Unsupported distance metric '{value}'. Expected one of: {', '.join(Distance.__members__)}"
                ) from exc
        raise ValueError("Distance must be provided as a Distance enum value or string name")


def point_id_for(ticket_id: str) -> str:
    """Qdrant only accepts integer or UUID point ids; derive a stable UUID."""

    return str(uuid5(NAMESPACE_URL, f"ticket:{ticket_id}"))


class QdrantEmbeddingStore:
    """Embeddings persisted as Qdrant points, one per ticket."""

    def __init__(self, client: QdrantClient, config: QdrantCollectionConfig) -> None:
        self._client = client
        self._config = config

    def _ensure_collection(self) -> None:
        if self._client.collection_exists(self._config.name):
            return
        self._client.create_collection(
            collection_name=self._config.name,
            vectors_config=VectorParams(size=self._config.vector_size, distance=self._config.distance),
            on_disk_payload=self._config.on_disk_payload,
        )

    async def ensure_schema(self) -> None:
        await asyncio.to_thread(self._ensure_collection)

    async def get(self, ticket_id: str) -> Embedding | None:
        records = await asyncio.to_thread(
            self._client.retrieve,
            collection_name=self._config.name,
            ids=[point_id_for(ticket_id)],
            with_vectors=True,
        )
        if not records:
            return None
        vector = records[0].vector
        if isinstance(vector, dict):
            # single unnamed vector per collection
            vector = next(iter(vector.values()), None)
        if not vector:
            return None
        return [float(value) for value in vector]

    async def put(self, ticket_id: str, embedding: Sequence[float]) -> None:
        point = PointStruct(
            id=point_id_for(ticket_id),
            vector=[float(value) for value in embedding],
            payload={"ticket_id": ticket_id},
        )
        await asyncio.to_thread(self._client.upsert, collection_name=self._config.name, points=[point])

    async def delete(self, ticket_id: str) -> None:
        await asyncio.to_thread(
            self._client.delete,
            collection_name=self._config.name,
            points_selector=PointIdsList(points=[point_id_for(ticket_id)]),
        )

    async def clear(self) -> None:
        await asyncio.to_thread(self._client.delete_collection, collection_name=self._config.name)
        await self.ensure_schema()
