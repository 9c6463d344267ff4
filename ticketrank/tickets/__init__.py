"""Ticket domain model and content-change handling."""

from .changes import ContentChangeDetector, content_changed
from .models import Ticket, ticket_text, truncate_for_embedding

__all__ = [
    "ContentChangeDetector",
    "Ticket",
    "content_changed",
    "ticket_text",
    "truncate_for_embedding",
]
