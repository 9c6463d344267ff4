from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ticketrank.dependencies.ranking import get_ranking_service
from ticketrank.ranking.orders import SortOrder
from ticketrank.services.availability import ProbeReason
from ticketrank.services.ranking import RankingService
from ticketrank.tickets.models import Ticket

router = APIRouter(tags=["ranking"])


class TicketPayload(BaseModel):
    id: str = Field(..., min_length=1)
    key: str = Field(..., min_length=1)
    summary: str
    created: datetime
    updated: datetime
    description: str | None = None
    labels: list[str] = Field(default_factory=list)
    assignee: str | None = None
    assignee_email: str | None = None
    reporter: str | None = None
    reporter_email: str | None = None
    parent_id: str | None = None
    status: str | None = None
    priority: str | None = None
    embedding: list[float] | None = None

    @field_validator("created", "updated")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # naive timestamps are taken as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_ticket(self) -> Ticket:
        return Ticket(**self.model_dump())


class RankRequest(BaseModel):
    tickets: list[TicketPayload]
    owner: str | None = Field(default=None, description="Display name or email of the viewing user")
    order: SortOrder = SortOrder.DEFAULT
    similarity_enabled: bool | None = None


class TicketResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    key: str
    summary: str
    created: datetime
    updated: datetime
    description: str | None
    labels: list[str]
    assignee: str | None
    assignee_email: str | None
    reporter: str | None
    reporter_email: str | None
    parent_id: str | None
    status: str | None
    priority: str | None


class SimilarityStatusResponse(BaseModel):
    available: bool
    reason: ProbeReason
    message: str | None = None


RankingServiceDep = Annotated[RankingService, Depends(get_ranking_service)]


@router.post("/tickets/rank", response_model=list[TicketResponse])
async def rank_tickets(payload: RankRequest, service: RankingServiceDep) -> list[TicketResponse]:
    ranked = await service.rank(
        [item.to_ticket() for item in payload.tickets],
        owner=payload.owner,
        order=payload.order,
        similarity_enabled=payload.similarity_enabled,
    )
    return [TicketResponse.model_validate(ticket) for ticket in ranked]


@router.get("/similarity/status", response_model=SimilarityStatusResponse)
async def similarity_status(service: RankingServiceDep) -> SimilarityStatusResponse:
    result = await service.check_availability()
    return SimilarityStatusResponse(available=result.available, reason=result.reason, message=result.message)
