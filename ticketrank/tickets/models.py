from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

MAX_EMBEDDING_CHARS = 8000


@dataclass(slots=True)
class Ticket:
    """Read-only view of a tracker work item, plus its cached embedding."""

    id: str
    key: str
    summary: str
    created: datetime
    updated: datetime
    description: str | None = None
    labels: Sequence[str] = field(default_factory=tuple)
    assignee: str | None = None
    assignee_email: str | None = None
    reporter: str | None = None
    reporter_email: str | None = None
    parent_id: str | None = None
    status: str | None = None
    priority: str | None = None
    embedding: Sequence[float] | None = None


def ticket_text(ticket: Ticket) -> str:
    """Text submitted to the embedding provider for ``ticket``."""

    text = f"{ticket.key}: {ticket.summary}"
    if ticket.description:
        text += f"\n{ticket.description}"
    if ticket.labels:
        text += f"\nLabels: {', '.join(ticket.labels)}"
    return text


def truncate_for_embedding(text: str, *, max_chars: int = MAX_EMBEDDING_CHARS) -> str:
    """Keep the head and tail of overly long texts so both ends stay represented."""

    if len(text) <= max_chars:
        return text
    half = max_chars // 2
    return text[:half] + text[len(text) - (max_chars - half) :]
