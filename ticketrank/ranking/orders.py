from __future__ import annotations

from enum import Enum
from typing import Iterable, Mapping

from ticketrank.tickets.models import Ticket

from .ranker import TicketRanker

_STATUS_ORDER: Mapping[str, int] = {
    "To Do": 1,
    "In Progress": 2,
    "In Review": 3,
    "Done": 4,
}

_PRIORITY_ORDER: Mapping[str, int] = {
    "Highest": 1,
    "High": 2,
    "Medium": 3,
    "Low": 4,
    "Lowest": 5,
}

_UNKNOWN_RANK = 999


class SortOrder(str, Enum):
    """Orderings a ticket list can be displayed in."""

    DEFAULT = "default"
    ALPHABETICAL = "alphabetical"
    CREATED = "created"
    UPDATED = "updated"
    STATUS = "status"
    PRIORITY = "priority"
    ASSIGNEE = "assignee"


def _newest_updated_first(tickets: list[Ticket]) -> list[Ticket]:
    return sorted(tickets, key=lambda ticket: ticket.updated, reverse=True)


def _then_by(tickets: list[Ticket], key) -> list[Ticket]:
    # Two stable passes: ``updated`` breaks ties left by ``key``.
    return sorted(_newest_updated_first(tickets), key=key)


async def sort_tickets(
    tickets: Iterable[Ticket],
    order: SortOrder | str,
    *,
    ranker: TicketRanker | None = None,
    owner_identifier: str | None = None,
    similarity_enabled: bool | None = None,
) -> list[Ticket]:
    """Return ``tickets`` arranged by ``order``.

    ``SortOrder.DEFAULT`` delegates to the four-tier ranking; a ranker without
    an embedding fetcher is used when none is supplied.
    """

    items = list(tickets)
    if not items:
        return []

    order = SortOrder(order)
    if order is SortOrder.DEFAULT:
        ranker = ranker or TicketRanker()
        return await ranker.rank(items, owner_identifier, similarity_enabled=similarity_enabled)
    if order is SortOrder.ALPHABETICAL:
        return sorted(items, key=lambda ticket: ticket.key)
    if order is SortOrder.CREATED:
        return sorted(items, key=lambda ticket: ticket.created, reverse=True)
    if order is SortOrder.UPDATED:
        return _newest_updated_first(items)
    if order is SortOrder.STATUS:
        return _then_by(items, lambda ticket: _STATUS_ORDER.get(ticket.status or "", _UNKNOWN_RANK))
    if order is SortOrder.PRIORITY:
        return _then_by(items, lambda ticket: _PRIORITY_ORDER.get(ticket.priority or "", _UNKNOWN_RANK))
    return _then_by(items, lambda ticket: (ticket.assignee or "Unassigned").casefold())
