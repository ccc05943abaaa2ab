from __future__ import annotations

"""Metric registry: one aggregation per definition, built once at startup.

The registry is immutable after ``build`` returns. Lookups take the raw metric
name from an update request and resolve it through the same sanitization used
at build time, so ``job-a`` and ``job_a`` address the same metric.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, NamedTuple, Optional, Sequence, Tuple

from cronprom.config.metrics_config import MetricDefinition, MetricKind, validate_definitions
from cronprom.errors import RegistrationError
from cronprom.services.aggregations import (
    Aggregation,
    CounterAggregation,
    GaugeAggregation,
    HistogramAggregation,
    SummaryAggregation,
)
from cronprom.services.exposition import render_text
from cronprom.services.logging import get_logger
from cronprom.services.naming import build_fq_name, is_valid_label_name, sanitize_metric_name


logger = get_logger()

BUILD_INFO_METRIC = "cronprom_build_info"
BUILD_INFO_HELP = "Build information about the application"
BUILD_INFO_LABELS = ("version", "commit_hash", "build_time")

_RESERVED_LABELS = {
    MetricKind.HISTOGRAM: "le",
    MetricKind.SUMMARY: "quantile",
}


@dataclass(frozen=True)
class BuildInfo:
    version: str
    commit: str
    date: str


class RegisteredMetric(NamedTuple):
    definition: MetricDefinition
    aggregation: Aggregation


def _check_labels(definition: MetricDefinition, kind: MetricKind) -> None:
    seen: set[str] = set()
    for label in definition.labels:
        if not is_valid_label_name(label):
            raise RegistrationError(f"metric '{definition.name}' has invalid label name '{label}'")
        if label in seen:
            raise RegistrationError(f"metric '{definition.name}' declares label '{label}' twice")
        if label == _RESERVED_LABELS.get(kind):
            raise RegistrationError(f"{kind.value} metric '{definition.name}' cannot use reserved label '{label}'")
        seen.add(label)


def create_aggregation(definition: MetricDefinition, full_name: str) -> Aggregation:
    """Instantiate the aggregation matching the definition's kind."""

    try:
        kind = MetricKind(definition.kind)
    except ValueError:
        raise RegistrationError(f"unsupported metric type: {definition.kind}") from None
    _check_labels(definition, kind)

    if kind is MetricKind.GAUGE:
        return GaugeAggregation(full_name, definition.description, definition.labels, definition.default_value)
    if kind is MetricKind.COUNTER:
        return CounterAggregation(full_name, definition.description, definition.labels)
    if kind is MetricKind.HISTOGRAM:
        return HistogramAggregation(full_name, definition.description, definition.labels, definition.buckets)
    return SummaryAggregation(
        full_name, definition.description, definition.labels, definition.effective_objectives
    )


def build_info_gauge(info: BuildInfo) -> GaugeAggregation:
    gauge = GaugeAggregation(BUILD_INFO_METRIC, BUILD_INFO_HELP, BUILD_INFO_LABELS)
    gauge.set({"version": info.version, "commit_hash": info.commit, "build_time": info.date}, 1)
    return gauge


class MetricRegistry:
    def __init__(self, metrics: Mapping[str, RegisteredMetric], exposed: Iterable[Aggregation]) -> None:
        self._metrics = MappingProxyType(dict(metrics))
        self._exposed: Tuple[Aggregation, ...] = tuple(sorted(exposed, key=lambda a: a.name))

    @classmethod
    def build(
        cls,
        definitions: Sequence[MetricDefinition],
        namespace: str = "",
        build_info: Optional[BuildInfo] = None,
    ) -> MetricRegistry:
        """Create one aggregation per definition.

        Definitions are validated first (ConfigValidationError). Raises
        RegistrationError when two definitions end up with the same sanitized
        or exposed name, or a definition cannot be instantiated.
        """

        validate_definitions(definitions)
        metrics: Dict[str, RegisteredMetric] = {}
        exposed: Dict[str, Aggregation] = {}

        def expose(aggregation: Aggregation) -> None:
            if aggregation.name in exposed:
                raise RegistrationError(f"duplicate metrics collector registration attempted: '{aggregation.name}'")
            exposed[aggregation.name] = aggregation

        for definition in definitions:
            key = sanitize_metric_name(definition.name)
            if key in metrics:
                raise RegistrationError(
                    f"metric '{definition.name}' collides with '{metrics[key].definition.name}' "
                    f"after sanitization to '{key}'"
                )
            aggregation = create_aggregation(definition, build_fq_name(namespace, key))
            expose(aggregation)
            metrics[key] = RegisteredMetric(definition, aggregation)
            logger.debug("metric_registered", metric=definition.name, exposed_as=aggregation.name, type=aggregation.kind.value)

        if build_info is not None:
            expose(build_info_gauge(build_info))

        logger.info("registry_built", metrics=len(metrics), namespace=namespace)
        return cls(metrics, exposed.values())

    def get(self, name: str, kind: MetricKind) -> Optional[Aggregation]:
        """Return the aggregation registered under ``name`` if it has the requested kind."""

        entry = self._metrics.get(sanitize_metric_name(name))
        if entry is None or entry.aggregation.kind is not kind:
            return None
        return entry.aggregation

    def definition(self, name: str) -> Optional[MetricDefinition]:
        entry = self._metrics.get(sanitize_metric_name(name))
        return entry.definition if entry is not None else None

    def aggregations(self) -> Tuple[Aggregation, ...]:
        """All exposed aggregations, sorted by exposed name."""

        return self._exposed

    def __len__(self) -> int:
        return len(self._metrics)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and sanitize_metric_name(name) in self._metrics

    def snapshot(self) -> str:
        return render_text(self._exposed)
