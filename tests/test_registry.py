from __future__ import annotations

import pytest

from conftest import sample_definitions

from cronprom.config.metrics_config import MetricDefinition, MetricKind
from cronprom.errors import DuplicateNameError, InvalidObjectiveError, RegistrationError
from cronprom.services.aggregations import (
    CounterAggregation,
    GaugeAggregation,
    HistogramAggregation,
    SummaryAggregation,
)
from cronprom.services.registry import BUILD_INFO_METRIC, BuildInfo, MetricRegistry


def test_build_registers_every_definition():
    registry = MetricRegistry.build(sample_definitions(), "cron_monitor")

    assert len(registry) == 4
    assert isinstance(registry.get("job_last_success", MetricKind.GAUGE), GaugeAggregation)
    assert isinstance(registry.get("job_failures_total", MetricKind.COUNTER), CounterAggregation)
    assert isinstance(registry.get("job_duration_seconds", MetricKind.HISTOGRAM), HistogramAggregation)
    assert isinstance(registry.get("job_runtime_seconds", MetricKind.SUMMARY), SummaryAggregation)
    assert registry.get("job_last_success", MetricKind.GAUGE).name == "cron_monitor_job_last_success"


def test_get_with_other_kind_returns_none():
    registry = MetricRegistry.build(sample_definitions(), "cron_monitor")
    assert registry.get("job_last_success", MetricKind.COUNTER) is None
    assert registry.get("nope", MetricKind.GAUGE) is None


def test_lookup_uses_sanitized_name():
    defs = [MetricDefinition(name="job-a", type="gauge")]
    registry = MetricRegistry.build(defs, "")

    gauge = registry.get("job-a", MetricKind.GAUGE)
    assert gauge is registry.get("job_a", MetricKind.GAUGE)
    assert gauge.name == "job_a"
    assert "job.a" in registry
    assert registry.definition("job_a").name == "job-a"


def test_sanitized_collision_is_fatal():
    defs = [
        MetricDefinition(name="job-a", type="gauge"),
        MetricDefinition(name="job.a", type="counter"),
    ]
    with pytest.raises(RegistrationError):
        MetricRegistry.build(defs, "ns")


@pytest.mark.parametrize(
    "definition",
    [
        MetricDefinition(name="h", type="histogram", buckets=[1], labels=["le"]),
        MetricDefinition(name="s", type="summary", labels=["quantile"]),
        MetricDefinition(name="g", type="gauge", labels=["__name__"]),
        MetricDefinition(name="g", type="gauge", labels=["job-name"]),
        MetricDefinition(name="g", type="gauge", labels=["a", "a"]),
    ],
)
def test_bad_labels_are_rejected(definition):
    with pytest.raises(RegistrationError):
        MetricRegistry.build([definition], "ns")


def test_build_info_gauge_is_exposed():
    info = BuildInfo(version="1.2.3", commit="abcdef1", date="2024-01-01")
    registry = MetricRegistry.build(sample_definitions(), "cron_monitor", build_info=info)

    names = [a.name for a in registry.aggregations()]
    assert BUILD_INFO_METRIC in names
    assert names == sorted(names)
    # not addressable through the push path
    assert len(registry) == 4

    gauge = next(a for a in registry.aggregations() if a.name == BUILD_INFO_METRIC)
    assert dict(gauge.collect()) == {("1.2.3", "abcdef1", "2024-01-01"): 1}


def test_build_info_name_collision_is_fatal():
    defs = [MetricDefinition(name="build_info", type="gauge")]
    with pytest.raises(RegistrationError):
        MetricRegistry.build(defs, "cronprom", build_info=BuildInfo("1", "c", "d"))


def test_build_validates_definitions():
    with pytest.raises(InvalidObjectiveError):
        MetricRegistry.build([MetricDefinition(name="s", type="summary", objectives={1.0: 0.01})], "ns")
    with pytest.raises(DuplicateNameError):
        MetricRegistry.build(
            [MetricDefinition(name="a", type="gauge"), MetricDefinition(name="a", type="gauge")], "ns"
        )


def test_aggregation_base_is_abstract():
    from cronprom.services.aggregations import _Aggregation

    with pytest.raises(TypeError):
        _Aggregation("x", "", ())
