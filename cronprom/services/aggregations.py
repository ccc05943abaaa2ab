from __future__ import annotations

"""In-memory aggregations, one per configured metric.

Each aggregation owns a map from label values (in declared label order) to a
series. The map is guarded by the aggregation lock; each series guards its own
numbers, so concurrent updates to different label combinations only contend
while the combination is looked up or created.
"""

import bisect
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Generic, List, Mapping, Sequence, Tuple, TypeVar, Union

from cronprom.config.metrics_config import MetricKind
from cronprom.services.quantiles import DEFAULT_AGE_BUCKETS, DEFAULT_MAX_AGE_SECONDS, SlidingQuantileWindow


LabelValues = Tuple[str, ...]


@dataclass(frozen=True)
class HistogramSnapshot:
    # (upper bound, cumulative count), ending with +Inf
    buckets: Tuple[Tuple[float, int], ...]
    sum: float
    count: int


@dataclass(frozen=True)
class SummarySnapshot:
    quantiles: Tuple[Tuple[float, float], ...]
    sum: float
    count: int


class _GaugeSeries:
    def __init__(self, value: float = 0.0) -> None:
        self._lock = Lock()
        self._value = float(value)

    def set(self, value: float) -> None:
        with self._lock:
            self._value = float(value)

    def snapshot(self) -> float:
        with self._lock:
            return self._value


class _CounterSeries:
    def __init__(self) -> None:
        self._lock = Lock()
        self._value = 0.0

    def add(self, delta: float) -> None:
        if delta < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            self._value += delta

    def snapshot(self) -> float:
        with self._lock:
            return self._value


class _HistogramSeries:
    def __init__(self, upper_bounds: Tuple[float, ...]) -> None:
        self._lock = Lock()
        self._upper_bounds = upper_bounds
        # One slot per finite bound plus the +Inf overflow slot; not cumulative.
        self._counts = [0] * (len(upper_bounds) + 1)
        self._sum = 0.0
        self._count = 0

    def observe(self, value: float) -> None:
        if math.isnan(value):
            index = len(self._upper_bounds)
        else:
            index = bisect.bisect_left(self._upper_bounds, value)
        with self._lock:
            self._counts[index] += 1
            self._sum += value
            self._count += 1

    def snapshot(self) -> HistogramSnapshot:
        with self._lock:
            counts = list(self._counts)
            total, count = self._sum, self._count
        buckets: List[Tuple[float, int]] = []
        running = 0
        for bound, c in zip((*self._upper_bounds, math.inf), counts):
            running += c
            buckets.append((bound, running))
        return HistogramSnapshot(buckets=tuple(buckets), sum=total, count=count)


class _SummarySeries:
    def __init__(self, objectives: Mapping[float, float], max_age: float, age_buckets: int, clock: Callable[[], float]) -> None:
        self._lock = Lock()
        self._quantiles = tuple(sorted(objectives))
        self._window = SlidingQuantileWindow(objectives, max_age=max_age, age_buckets=age_buckets, clock=clock)
        self._sum = 0.0
        self._count = 0

    def observe(self, value: float) -> None:
        with self._lock:
            self._window.insert(value)
            self._sum += value
            self._count += 1

    def snapshot(self) -> SummarySnapshot:
        with self._lock:
            quantiles = tuple((q, self._window.query(q)) for q in self._quantiles)
            return SummarySnapshot(quantiles=quantiles, sum=self._sum, count=self._count)


S = TypeVar("S", _GaugeSeries, _CounterSeries, _HistogramSeries, _SummarySeries)


class _Aggregation(ABC, Generic[S]):
    kind: MetricKind

    def __init__(self, name: str, help: str, label_names: Sequence[str]) -> None:
        self.name = name
        self.help = help
        self.label_names: Tuple[str, ...] = tuple(label_names)
        self._lock = Lock()
        self._series: Dict[LabelValues, S] = {}
        if not self.label_names:
            # A metric without labels has exactly one series; expose it from the start.
            self._series[()] = self._new_series()

    @abstractmethod
    def _new_series(self) -> S:
        ...

    def _child(self, labels: Mapping[str, str]) -> S:
        if len(labels) != len(self.label_names) or any(name not in labels for name in self.label_names):
            raise ValueError(
                f"metric '{self.name}' expects labels {list(self.label_names)}, got {sorted(labels)}"
            )
        key = tuple(labels[name] for name in self.label_names)
        with self._lock:
            series = self._series.get(key)
            if series is None:
                series = self._new_series()
                self._series[key] = series
            return series

    def collect(self) -> List[Tuple[LabelValues, object]]:
        """Return ``(label values, snapshot)`` for every series, in insertion order."""

        with self._lock:
            items = list(self._series.items())
        return [(key, series.snapshot()) for key, series in items]


class GaugeAggregation(_Aggregation[_GaugeSeries]):
    kind = MetricKind.GAUGE

    def __init__(self, name: str, help: str, label_names: Sequence[str], default_value: float = 0.0) -> None:
        self.default_value = float(default_value)
        super().__init__(name, help, label_names)

    def _new_series(self) -> _GaugeSeries:
        return _GaugeSeries(self.default_value)

    def set(self, labels: Mapping[str, str], value: float) -> None:
        self._child(labels).set(value)


class CounterAggregation(_Aggregation[_CounterSeries]):
    kind = MetricKind.COUNTER

    def _new_series(self) -> _CounterSeries:
        return _CounterSeries()

    def add(self, labels: Mapping[str, str], delta: float = 1.0) -> None:
        # checked before _child so a rejected update creates no series
        if delta < 0:
            raise ValueError("counter cannot decrease in value")
        self._child(labels).add(delta)


class HistogramAggregation(_Aggregation[_HistogramSeries]):
    kind = MetricKind.HISTOGRAM

    def __init__(self, name: str, help: str, label_names: Sequence[str], buckets: Sequence[float]) -> None:
        bounds = list(buckets)
        # +Inf is implicit
        while bounds and math.isinf(bounds[-1]) and bounds[-1] > 0:
            bounds.pop()
        self.upper_bounds: Tuple[float, ...] = tuple(bounds)
        super().__init__(name, help, label_names)

    def _new_series(self) -> _HistogramSeries:
        return _HistogramSeries(self.upper_bounds)

    def observe(self, labels: Mapping[str, str], value: float) -> None:
        self._child(labels).observe(value)


class SummaryAggregation(_Aggregation[_SummarySeries]):
    kind = MetricKind.SUMMARY

    def __init__(
        self,
        name: str,
        help: str,
        label_names: Sequence[str],
        objectives: Mapping[float, float],
        *,
        max_age: float = DEFAULT_MAX_AGE_SECONDS,
        age_buckets: int = DEFAULT_AGE_BUCKETS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.objectives = dict(objectives)
        self._max_age = max_age
        self._age_buckets = age_buckets
        self._clock = clock
        super().__init__(name, help, label_names)

    def _new_series(self) -> _SummarySeries:
        return _SummarySeries(self.objectives, self._max_age, self._age_buckets, self._clock)

    def observe(self, labels: Mapping[str, str], value: float) -> None:
        self._child(labels).observe(value)


Aggregation = Union[GaugeAggregation, CounterAggregation, HistogramAggregation, SummaryAggregation]
