"""Labelled counters and distributions for cache and ranking telemetry."""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from time import perf_counter
from typing import Callable, Generic, Iterable, Iterator, Mapping, Tuple, TypeVar

LabelValues = Tuple[str, ...]
_V = TypeVar("_V")


class Metric(Generic[_V]):
    """A named family of series, one per combination of label values.

    Subclasses decide what a series holds (``_blank``) and how it is reported
    (``_report``); ``kind`` is the exposition type written by exporters.
    """

    kind = "untyped"

    def __init__(
        self, name: str, *, description: str = "", label_names: Iterable[str] | None = None
    ) -> None:
        self.name = name
        self.description = description
        self.label_names: LabelValues = tuple(label_names or ())
        self._series: dict[LabelValues, _V] = {}
        self._lock = Lock()

    def _blank(self) -> _V:
        raise NotImplementedError

    def _report(self, value: _V) -> Mapping[str, float]:
        raise NotImplementedError

    def _label_key(self, labels: Mapping[str, str] | None) -> LabelValues:
        given = dict(labels or {})
        unexpected = sorted(set(given) - set(self.label_names))
        if unexpected:
            raise ValueError(f"Metric '{self.name}' does not accept label(s) {unexpected}")
        missing = [label for label in self.label_names if label not in given]
        if missing:
            raise ValueError(f"Missing label(s) {missing} for metric '{self.name}'")
        return tuple(str(given[label]) for label in self.label_names)

    def _apply(self, labels: Mapping[str, str] | None, change: Callable[[_V], _V]) -> None:
        key = self._label_key(labels)
        with self._lock:
            current = self._series[key] if key in self._series else self._blank()
            self._series[key] = change(current)

    def snapshot(self) -> Mapping[LabelValues, Mapping[str, float]]:
        with self._lock:
            return {key: self._report(value) for key, value in self._series.items()}

    def reset(self) -> None:
        with self._lock:
            self._series.clear()


class CounterMetric(Metric[float]):
    """Monotonic counter."""

    kind = "counter"

    def _blank(self) -> float:
        return 0.0

    def _report(self, value: float) -> Mapping[str, float]:
        return {"value": value}

    def inc(self, amount: float = 1.0, *, labels: Mapping[str, str] | None = None) -> None:
        if amount < 0:
            raise ValueError("Counters can only be incremented")
        self._apply(labels, lambda current: current + amount)

    def value(self, *, labels: Mapping[str, str] | None = None) -> float:
        key = self._label_key(labels)
        with self._lock:
            return self._series.get(key, 0.0)


@dataclass(frozen=True)
class Summary:
    count: int = 0
    total: float = 0.0
    peak: float = 0.0

    def plus(self, value: float) -> Summary:
        return Summary(self.count + 1, self.total + value, max(self.peak, value) if self.count else value)


class DistributionMetric(Metric[Summary]):
    """Count, sum and maximum of observed values such as durations."""

    kind = "summary"

    def _blank(self) -> Summary:
        return Summary()

    def _report(self, value: Summary) -> Mapping[str, float]:
        return {
            "count": float(value.count),
            "sum": value.total,
            "max": value.peak,
            "avg": value.total / value.count if value.count else 0.0,
        }

    def observe(self, value: float, *, labels: Mapping[str, str] | None = None) -> None:
        self._apply(labels, lambda current: current.plus(value))


@contextmanager
def track_duration(metric: DistributionMetric, *, labels: Mapping[str, str] | None = None) -> Iterator[None]:
    """Observe how long the wrapped block took, in seconds, even when it raises."""

    started = perf_counter()
    try:
        yield
    finally:
        metric.observe(perf_counter() - started, labels=labels)
