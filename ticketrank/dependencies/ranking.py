from __future__ import annotations

from fastapi import HTTPException, Request

from ticketrank.metrics import MetricsRegistry, metrics_registry
from ticketrank.services.ranking import RankingService


async def get_ranking_service(request: Request) -> RankingService:
    service = getattr(request.app.state, "ranking_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ranking service is not configured")
    return service


async def get_metrics_registry(request: Request) -> MetricsRegistry:
    return getattr(request.app.state, "metrics_registry", None) or metrics_registry
