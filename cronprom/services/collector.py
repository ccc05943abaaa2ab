from __future__ import annotations

"""MetricCollector: routes pushed updates to the registry's aggregations.

Every operation looks the metric up by name and kind, reconciles the labels,
then mutates exactly one label combination. All operations may be called
concurrently from any number of threads.
"""

from typing import Callable, Dict, Mapping, Optional, Union

from cronprom.config.metrics_config import Config, MetricKind
from cronprom.errors import EmptyNameError, MetricNotFoundError
from cronprom.services.aggregations import Aggregation
from cronprom.services.labels import normalize_labels
from cronprom.services.logging import get_logger
from cronprom.services.registry import BuildInfo, MetricRegistry


logger = get_logger()

Labels = Optional[Mapping[str, str]]


class MetricCollector:
    def __init__(self, registry: MetricRegistry) -> None:
        self._registry = registry
        self._dispatch: Dict[MetricKind, Callable[[str, float, Labels], None]] = {
            MetricKind.GAUGE: self.update_gauge,
            MetricKind.COUNTER: self.increment_counter,
            MetricKind.HISTOGRAM: self.observe_histogram,
            MetricKind.SUMMARY: self.observe_summary,
        }

    @classmethod
    def from_config(cls, config: Config, build_info: Optional[BuildInfo] = None) -> MetricCollector:
        return cls(MetricRegistry.build(config.metrics, config.namespace, build_info=build_info))

    @property
    def registry(self) -> MetricRegistry:
        return self._registry

    def _require(self, name: str, kind: MetricKind) -> Aggregation:
        aggregation = self._registry.get(name, kind)
        if aggregation is None:
            raise MetricNotFoundError(f"{kind.value} metric '{name}' not found")
        return aggregation

    def update_gauge(self, name: str, value: float, labels: Labels = None) -> None:
        gauge = self._require(name, MetricKind.GAUGE)
        gauge.set(normalize_labels(self._registry, name, labels), value)

    def increment_counter(self, name: str, delta: float = 1.0, labels: Labels = None) -> None:
        """Add ``delta`` to a counter. Negative deltas raise ValueError."""

        counter = self._require(name, MetricKind.COUNTER)
        counter.add(normalize_labels(self._registry, name, labels), delta)

    increment_counter_by = increment_counter

    def observe_histogram(self, name: str, value: float, labels: Labels = None) -> None:
        histogram = self._require(name, MetricKind.HISTOGRAM)
        histogram.observe(normalize_labels(self._registry, name, labels), value)

    def observe_summary(self, name: str, value: float, labels: Labels = None) -> None:
        summary = self._require(name, MetricKind.SUMMARY)
        summary.observe(normalize_labels(self._registry, name, labels), value)

    def apply(self, kind: Union[MetricKind, str], name: str, value: float, labels: Labels = None) -> None:
        """Route one pushed update to the operation for its kind.

        ``kind`` may be the raw type string of an update request; an unknown
        type raises UnsupportedKindError, checked after the name.
        """

        if not name:
            raise EmptyNameError("metric name is required")
        kind = MetricKind.parse(kind)
        self._dispatch[kind](name, value, labels)
        logger.debug("metric_updated", metric=name, type=kind.value, value=value)

    def snapshot(self) -> str:
        return self._registry.snapshot()
