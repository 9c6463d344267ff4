"""Service layer exports."""

from .availability import AvailabilityProbe, ProbeReason, ProbeResult
from .ranking import RankingService, build_ranking_service

__all__ = [
    "AvailabilityProbe",
    "ProbeReason",
    "ProbeResult",
    "RankingService",
    "build_ranking_service",
]
