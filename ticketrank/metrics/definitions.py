"""Metric definitions registered at import time."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

CACHE_LOOKUPS = "embedding_cache_lookups_total"
PROVIDER_REQUESTS = "embedding_provider_requests_total"
PROVIDER_FAILURES = "embedding_provider_failures_total"
BATCH_FALLBACKS = "embedding_batch_fallbacks_total"
DURABLE_FAILURES = "embedding_durable_failures_total"
INVALIDATIONS = "embedding_invalidations_total"
RELATED_SKIPPED = "ranking_related_tier_skipped_total"
RANKING_DURATION = "ranking_duration_seconds"


@dataclass(frozen=True)
class MetricDefinition:
    """Describe a metric that should exist in the registry."""

    name: str
    metric_type: str
    description: str
    label_names: Tuple[str, ...] = ()


DEFAULT_METRIC_DEFINITIONS: Tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name=CACHE_LOOKUPS,
        metric_type="counter",
        description="Embedding resolutions by the tier that answered (memory, ticket, durable, miss).",
        label_names=("tier",),
    ),
    MetricDefinition(
        name=PROVIDER_REQUESTS,
        metric_type="counter",
        description="Requests issued to the remote embedding provider.",
        label_names=("operation",),
    ),
    MetricDefinition(
        name=PROVIDER_FAILURES,
        metric_type="counter",
        description="Failed requests to the remote embedding provider.",
        label_names=("operation",),
    ),
    MetricDefinition(
        name=BATCH_FALLBACKS,
        metric_type="counter",
        description="Batches that fell back to per-ticket generation.",
    ),
    MetricDefinition(
        name=DURABLE_FAILURES,
        metric_type="counter",
        description="Durable embedding store operations that failed and were ignored.",
        label_names=("operation",),
    ),
    MetricDefinition(
        name=INVALIDATIONS,
        metric_type="counter",
        description="Embeddings invalidated after a content change.",
    ),
    MetricDefinition(
        name=RELATED_SKIPPED,
        metric_type="counter",
        description="Ranking passes that skipped the similarity tier.",
        label_names=("reason",),
    ),
    MetricDefinition(
        name=RANKING_DURATION,
        metric_type="distribution",
        description="Duration of ticket ranking passes in seconds.",
    ),
)
