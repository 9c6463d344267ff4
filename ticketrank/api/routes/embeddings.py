from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status

from ticketrank.dependencies.ranking import get_ranking_service
from ticketrank.services.ranking import RankingService

router = APIRouter(prefix="/embeddings", tags=["embeddings"])

RankingServiceDep = Annotated[RankingService, Depends(get_ranking_service)]


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def invalidate_embedding(ticket_id: str, service: RankingServiceDep) -> Response:
    await service.invalidate(ticket_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Drop the in-memory embedding cache")
async def clear_embeddings(service: RankingServiceDep) -> Response:
    service.clear_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
