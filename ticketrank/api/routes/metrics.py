from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ticketrank.dependencies.ranking import get_metrics_registry
from ticketrank.metrics import MetricsRegistry, PrometheusExporter

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=PlainTextResponse, summary="Prometheus metrics")
async def export_metrics(registry: Annotated[MetricsRegistry, Depends(get_metrics_registry)]) -> str:
    return PrometheusExporter(registry).build_payload()
