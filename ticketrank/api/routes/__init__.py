"""Route modules exposed by the API package."""

from . import embeddings, metrics, ping, ranking

__all__ = ["embeddings", "metrics", "ping", "ranking"]
