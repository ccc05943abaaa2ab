from __future__ import annotations

import pytest

from cronprom.config.metrics_config import MetricDefinition
from cronprom.services.collector import MetricCollector
from cronprom.services.registry import MetricRegistry


def sample_definitions() -> list[MetricDefinition]:
    return [
        MetricDefinition(
            name="job_last_success",
            description="Timestamp of the last successful job execution",
            type="gauge",
            labels=["job_name", "environment"],
        ),
        MetricDefinition(
            name="job_failures_total",
            description="Total number of job failures",
            type="counter",
            labels=["job_name", "environment", "error_type"],
        ),
        MetricDefinition(
            name="job_duration_seconds",
            description="Duration of job execution in seconds",
            type="histogram",
            labels=["job_name", "environment"],
            buckets=[0.1, 0.5, 1, 5],
        ),
        MetricDefinition(
            name="job_runtime_seconds",
            description="Job runtime quantiles",
            type="summary",
            labels=["job_name"],
        ),
    ]


def series(collector: MetricCollector, name: str, kind) -> dict:
    """Map of label values to snapshot for one metric."""

    aggregation = collector.registry.get(name, kind)
    assert aggregation is not None
    return dict(aggregation.collect())


@pytest.fixture
def collector() -> MetricCollector:
    return MetricCollector(MetricRegistry.build(sample_definitions(), "cron_monitor"))
