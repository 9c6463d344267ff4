from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import asyncpg
from fastapi import FastAPI
from qdrant_client import QdrantClient

from ticketrank.api.routes import embeddings, metrics, ping, ranking
from ticketrank.core.config import Settings, get_settings
from ticketrank.core.logging import configure_logging, init_tracer, shutdown_tracer
from ticketrank.embeddings.durable import (
    DurableEmbeddingStore,
    NullEmbeddingStore,
    PostgresEmbeddingStore,
    QdrantCollectionConfig,
    QdrantEmbeddingStore,
)
from ticketrank.metrics import metrics_registry
from ticketrank.services.ranking import build_ranking_service

logger = logging.getLogger(__name__)


async def open_durable_store(settings: Settings) -> tuple[DurableEmbeddingStore, Any]:
    """Connect the configured durable tier; returns the store and the handle to close."""

    if settings.durable_backend == "postgres":
        pool = await asyncpg.create_pool(dsn=settings.postgres_dsn, min_size=1, max_size=5)
        store = PostgresEmbeddingStore(pool)
        try:
            await store.ensure_schema()
        except Exception:
            await pool.close()
            raise
        return store, pool

    if settings.durable_backend == "qdrant":
        client = QdrantClient(host=settings.qdrant_host, port=settings.qdrant_port, api_key=settings.qdrant_api_key)
        store = QdrantEmbeddingStore(
            client,
            QdrantCollectionConfig(
                name=settings.qdrant_collection_name,
                vector_size=settings.embedding_dimensions or 1536,
            ),
        )
        try:
            await store.ensure_schema()
        except Exception:
            client.close()
            raise
        return store, client

    return NullEmbeddingStore(), None


async def _close_handle(handle: Any) -> None:
    if isinstance(handle, asyncpg.Pool):
        await handle.close()
    elif isinstance(handle, QdrantClient):
        handle.close()


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    app.state.logger = configure_logging(settings)
    tracer_provider = init_tracer(settings)
    app.state.tracer_provider = tracer_provider
    app.state.metrics_registry = metrics_registry

    handle = None
    try:
        durable, handle = await open_durable_store(settings)
    except Exception:
        logger.exception("Durable embedding store unavailable, continuing with memory cache only")
        durable = NullEmbeddingStore()

    service = build_ranking_service(settings, durable=durable, metrics=metrics_registry)
    app.state.ranking_service = service
    try:
        yield
    finally:
        await service.aclose()
        await _close_handle(handle)
        shutdown_tracer(tracer_provider)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(ping.router)
    app.include_router(ranking.router)
    app.include_router(embeddings.router)
    app.include_router(metrics.router)
    return app


app = create_app()
