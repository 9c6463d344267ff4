"""Four-tier ticket ranking: owned, related, parents, remainder."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Sequence

from opentelemetry import trace

from ticketrank.core.config import RankingConfig
from ticketrank.embeddings.fetcher import BatchEmbeddingFetcher
from ticketrank.embeddings.vectors import Embedding
from ticketrank.metrics import MetricsRegistry, metrics_registry as default_metrics_registry
from ticketrank.metrics import register_default_metrics, track_duration
from ticketrank.metrics.definitions import RANKING_DURATION, RELATED_SKIPPED
from ticketrank.tickets.models import Ticket

from .ownership import is_owner
from .similarity import DimensionMismatchError, cosine_similarity

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SimilarityFn = Callable[[Sequence[float], Sequence[float]], float]


def _by_updated(ticket: Ticket):
    return ticket.updated


def _by_created(ticket: Ticket):
    return ticket.created


@dataclass(slots=True)
class RankingResult:
    """The four disjoint tiers produced by :class:`TicketRanker`.

    ``related_scores`` holds the similarity that admitted each related
    ticket; ``related_skipped`` names why the related tier was not computed.
    """

    owner: list[Ticket] = field(default_factory=list)
    related: list[Ticket] = field(default_factory=list)
    parents: list[Ticket] = field(default_factory=list)
    remainder: list[Ticket] = field(default_factory=list)
    related_scores: dict[str, float] = field(default_factory=dict)
    related_skipped: str | None = None

    @property
    def ordered(self) -> list[Ticket]:
        return [*self.owner, *self.related, *self.parents, *self.remainder]


class TicketRanker:
    """Order tickets for a viewing user.

    Owned tickets come first (newest update first), then tickets similar to
    them, then parents of other tickets and finally everything else (both by
    newest creation). Sorts are stable, so equal timestamps keep input order.
    The similarity tier degrades to empty on any provider trouble; ranking
    itself never fails because of it.
    """

    def __init__(
        self,
        fetcher: BatchEmbeddingFetcher | None = None,
        config: RankingConfig | None = None,
        *,
        similarity: SimilarityFn = cosine_similarity,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.config = config or (fetcher.config if fetcher is not None else RankingConfig())
        self.similarity = similarity
        self.metrics = register_default_metrics(metrics or default_metrics_registry)

    async def rank(
        self,
        tickets: Iterable[Ticket],
        owner_identifier: str | None = None,
        *,
        similarity_enabled: bool | None = None,
    ) -> list[Ticket]:
        result = await self.rank_tiers(tickets, owner_identifier, similarity_enabled=similarity_enabled)
        return result.ordered

    async def rank_tiers(
        self,
        tickets: Iterable[Ticket],
        owner_identifier: str | None = None,
        *,
        similarity_enabled: bool | None = None,
    ) -> RankingResult:
        unique: dict[str, Ticket] = {}
        for ticket in tickets:
            unique.setdefault(ticket.id, ticket)
        candidates = list(unique.values())

        with tracer.start_as_current_span("ranking.rank") as span, track_duration(
            self.metrics.distribution(RANKING_DURATION)
        ):
            span.set_attribute("tickets.count", len(candidates))
            result = RankingResult()

            result.owner = sorted(
                (ticket for ticket in candidates if is_owner(owner_identifier, ticket)),
                key=_by_updated,
                reverse=True,
            )
            placed = {ticket.id for ticket in result.owner}

            await self._fill_related(result, candidates, placed, similarity_enabled)
            placed.update(ticket.id for ticket in result.related)

            referenced = {
                ticket.parent_id for ticket in candidates if ticket.parent_id and ticket.parent_id != ticket.id
            }
            result.parents = sorted(
                (ticket for ticket in candidates if ticket.id in referenced and ticket.id not in placed),
                key=_by_created,
                reverse=True,
            )
            placed.update(ticket.id for ticket in result.parents)

            result.remainder = sorted(
                (ticket for ticket in candidates if ticket.id not in placed),
                key=_by_created,
                reverse=True,
            )

            span.set_attribute("tier.owner", len(result.owner))
            span.set_attribute("tier.related", len(result.related))
            span.set_attribute("tier.parents", len(result.parents))
            span.set_attribute("tier.remainder", len(result.remainder))
            return result

    async def _fill_related(
        self,
        result: RankingResult,
        candidates: Sequence[Ticket],
        placed: set[str],
        similarity_enabled: bool | None,
    ) -> None:
        fetcher = self.fetcher
        reason = self._related_skip_reason(len(result.owner), similarity_enabled)
        if reason is not None or fetcher is None:
            self._skip_related(result, reason or "unconfigured")
            return

        try:
            embeddings = await fetcher.resolve_many(candidates)
            self._collect_related(result, candidates, placed, embeddings)
        except Exception as exc:
            logger.error("Similarity ranking failed, continuing without related tickets: %s", exc)
            result.related = []
            result.related_scores = {}
            self._skip_related(result, "provider_error")

    def _related_skip_reason(self, owner_count: int, similarity_enabled: bool | None) -> str | None:
        enabled = self.fetcher is not None if similarity_enabled is None else similarity_enabled
        if not enabled:
            return "disabled"
        if self.fetcher is None:
            logger.info("Embedding provider not configured, skipping related tickets")
            return "unconfigured"
        if owner_count == 0:
            return "no_owner_tickets"
        if owner_count > self.config.max_owner_tickets:
            logger.info(
                "Too many owner tickets for similarity analysis (%d > %d), skipping related tickets",
                owner_count,
                self.config.max_owner_tickets,
            )
            return "owner_bound_exceeded"
        return None

    def _skip_related(self, result: RankingResult, reason: str) -> None:
        result.related_skipped = reason
        self.metrics.counter(RELATED_SKIPPED).inc(labels={"reason": reason})

    def _collect_related(
        self,
        result: RankingResult,
        candidates: Sequence[Ticket],
        placed: set[str],
        embeddings: Mapping[str, Embedding],
    ) -> None:
        threshold = self.config.similarity_threshold
        others = [ticket for ticket in candidates if ticket.id not in placed and ticket.id in embeddings]
        related: list[Ticket] = []

        for owner_ticket in result.owner:
            owner_embedding = embeddings.get(owner_ticket.id)
            if owner_embedding is None:
                continue

            matches: list[tuple[float, Ticket]] = []
            for other in others:
                try:
                    score = self.similarity(owner_embedding, embeddings[other.id])
                except DimensionMismatchError as exc:
                    logger.warning("Skipping %s vs %s: %s", owner_ticket.key, other.key, exc)
                    continue
                if score >= threshold:
                    matches.append((score, other))

            matches.sort(key=lambda match: match[0], reverse=True)
            for score, other in matches:
                if other.id in result.related_scores:
                    continue
                result.related_scores[other.id] = score
                related.append(other)

        result.related = sorted(related, key=_by_updated, reverse=True)
