from __future__ import annotations

from typing import Iterator, MutableMapping

from .vectors import Embedding


class EmbeddingCache:
    """Session-scoped ticket id -> embedding map.

    Unbounded and never evicted; entries live until :meth:`discard`,
    :meth:`clear` or the end of the process. Concurrent writers for the same
    id always store equal vectors, so no locking is needed.
    """

    def __init__(self) -> None:
        self._entries: MutableMapping[str, Embedding] = {}

    def get(self, ticket_id: str) -> Embedding | None:
        return self._entries.get(ticket_id)

    def set(self, ticket_id: str, embedding: Embedding) -> None:
        self._entries[ticket_id] = embedding

    def discard(self, ticket_id: str) -> bool:
        return self._entries.pop(ticket_id, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, ticket_id: object) -> bool:
        return ticket_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
