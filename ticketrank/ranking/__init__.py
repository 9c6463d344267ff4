"""Ticket ordering: ownership, similarity and structure."""

from .orders import SortOrder, sort_tickets
from .ownership import OwnerRole, is_owner, owner_role
from .ranker import RankingResult, TicketRanker
from .similarity import DimensionMismatchError, cosine_similarity

__all__ = [
    "DimensionMismatchError",
    "OwnerRole",
    "RankingResult",
    "SortOrder",
    "TicketRanker",
    "cosine_similarity",
    "is_owner",
    "owner_role",
    "sort_tickets",
]
