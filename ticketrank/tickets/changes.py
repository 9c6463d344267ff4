from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Iterable, Mapping, Protocol

from .models import Ticket

logger = logging.getLogger(__name__)


class Invalidator(Protocol):
    async def invalidate(self, ticket_id: str) -> None:
        ...


def content_changed(previous: Ticket, current: Ticket) -> bool:
    """Only summary and description feed the embedding."""

    return previous.summary != current.summary or previous.description != current.description


@dataclass(slots=True)
class ContentChangeDetector:
    """Keep embeddings in step with ticket content across syncs."""

    store: Invalidator

    async def reconcile(self, previous: Ticket | None, current: Ticket) -> Ticket:
        """Return ``current`` with an embedding that is valid for its content.

        A content change invalidates every cached copy and clears the
        embedding; otherwise a previously stored embedding is carried over.
        """

        if previous is None:
            return current

        if content_changed(previous, current):
            logger.debug("Content of %s changed, invalidating its embedding", current.key)
            await self.store.invalidate(current.id)
            return replace(current, embedding=None)

        if not current.embedding and previous.embedding:
            return replace(current, embedding=previous.embedding)
        return current

    async def reconcile_many(
        self, previous_by_id: Mapping[str, Ticket], current: Iterable[Ticket]
    ) -> list[Ticket]:
        return [await self.reconcile(previous_by_id.get(ticket.id), ticket) for ticket in current]
