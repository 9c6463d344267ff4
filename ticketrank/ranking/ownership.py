from __future__ import annotations

from enum import Enum

from ticketrank.tickets.models import Ticket


class OwnerRole(str, Enum):
    """Which ownership field matched the viewing user."""

    ASSIGNEE = "assignee"
    REPORTER = "reporter"


def _person_matches(identifier: str, name: str | None, email: str | None) -> bool:
    if email and email.lower() == identifier:
        return True
    if name:
        lowered = name.lower()
        return lowered == identifier or identifier in lowered or lowered in identifier
    return False


def owner_role(identifier: str | None, ticket: Ticket) -> OwnerRole | None:
    """Return how ``identifier`` owns ``ticket``, checking the assignee before the reporter.

    Emails must match exactly; display names match when either contains the
    other. Comparisons ignore case.
    """

    normalized = (identifier or "").strip().lower()
    if not normalized:
        return None
    if _person_matches(normalized, ticket.assignee, ticket.assignee_email):
        return OwnerRole.ASSIGNEE
    if _person_matches(normalized, ticket.reporter, ticket.reporter_email):
        return OwnerRole.REPORTER
    return None


def is_owner(identifier: str | None, ticket: Ticket) -> bool:
    return owner_role(identifier, ticket) is not None
