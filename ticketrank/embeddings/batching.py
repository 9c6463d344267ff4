"""Pure helpers that shape embedding requests before any I/O happens."""
from __future__ import annotations

import math
from typing import Callable, Sequence, TypeVar

from ticketrank.tickets.models import truncate_for_embedding

T = TypeVar("T")

DEFAULT_TOKEN_LIMIT = 8000


def estimate_tokens(text: str) -> int:
    """Rough token count of ``text`` as submitted (about four characters per token)."""

    return math.ceil(len(truncate_for_embedding(text)) / 4)


def chunk(items: Sequence[T], size: int) -> list[list[T]]:
    if size < 1:
        raise ValueError("size must be at least 1")
    return [list(items[start : start + size]) for start in range(0, len(items), size)]


def split_until_under_budget(
    items: Sequence[T],
    *,
    key: Callable[[T], str] | None = None,
    token_limit: int = DEFAULT_TOKEN_LIMIT,
) -> list[list[T]]:
    """Halve ``items`` recursively until every part fits within ``token_limit``.

    ``key`` maps an item to its text (identity when omitted). Parts keep the
    original item order, so concatenating them yields ``items`` again. A
    single item is never split further even if it alone exceeds the limit.
    """

    text_of = key or (lambda item: item)  # type: ignore[assignment,return-value]
    items = list(items)
    if not items:
        return []

    total = sum(estimate_tokens(text_of(item)) for item in items)
    if total <= token_limit or len(items) == 1:
        return [items]

    middle = len(items) // 2
    return split_until_under_budget(items[:middle], key=key, token_limit=token_limit) + split_until_under_budget(
        items[middle:], key=key, token_limit=token_limit
    )
