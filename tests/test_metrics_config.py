from __future__ import annotations

from pathlib import Path

import pytest

from cronprom.config.metrics_config import (
    DEFAULT_OBJECTIVES,
    MetricDefinition,
    MetricKind,
    load_config,
    load_config_from_dict,
    parse_address,
    parse_duration,
    validate_definitions,
)
from cronprom.errors import (
    ConfigError,
    ConfigValidationError,
    DuplicateNameError,
    EmptyNameError,
    InvalidBucketsError,
    InvalidObjectiveError,
    MissingBucketsError,
    MissingObjectivesError,
    UnknownKindError,
    UnsupportedKindError,
)


SAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "config.yml"


def _def(**kwargs) -> MetricDefinition:
    return MetricDefinition(**kwargs)


def test_sample_config_loads():
    config = load_config(SAMPLE_CONFIG)
    assert config.namespace == "cron_monitor"
    assert config.web.address == ":8080"
    assert [m.metric_kind for m in config.metrics] == [
        MetricKind.GAUGE,
        MetricKind.HISTOGRAM,
        MetricKind.COUNTER,
        MetricKind.SUMMARY,
    ]
    assert config.metrics[1].buckets == (0.1, 0.5, 1, 5, 10, 30, 60, 300, 600)
    assert config.metrics[3].objectives == {0.5: 0.05, 0.9: 0.01, 0.99: 0.001}


def test_load_config_from_tmp_file(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        "global:\n"
        "  namespace: ops\n"
        "metrics:\n"
        "  - name: backups_total\n"
        "    type: Counter\n"
        "    labels: [host]\n",
        encoding="utf-8",
    )
    config = load_config(path)
    assert config.web.address == ":8080"
    assert config.global_settings.refresh_interval == "30s"
    assert config.metrics[0].kind == "counter"
    assert config.metrics[0].labels == ("host",)


def test_load_config_errors(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yml")

    broken = tmp_path / "broken.yml"
    broken.write_text("metrics: [\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(broken)

    listing = tmp_path / "list.yml"
    listing.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(listing)


def test_namespace_required():
    with pytest.raises(ConfigValidationError):
        load_config_from_dict({"metrics": []})


def test_bad_refresh_interval_rejected():
    with pytest.raises(ConfigValidationError):
        load_config_from_dict({"global": {"namespace": "x", "refresh_interval": "soon"}})


@pytest.mark.parametrize(
    "definition, error",
    [
        (_def(name="", type="gauge"), EmptyNameError),
        (_def(name="h", type="histogram"), MissingBucketsError),
        (_def(name="h", type="histogram", buckets=[1, 1]), InvalidBucketsError),
        (_def(name="h", type="histogram", buckets=[5, 1]), InvalidBucketsError),
        (_def(name="s", type="summary", objectives={}), MissingObjectivesError),
        (_def(name="s", type="summary", objectives={1.5: 0.01}), InvalidObjectiveError),
        (_def(name="s", type="summary", objectives={0.5: 1.0}), InvalidObjectiveError),
        (_def(name="t", type="timer"), UnknownKindError),
    ],
)
def test_invalid_definition(definition, error):
    with pytest.raises(error):
        validate_definitions([definition])


def test_first_problem_in_order_wins():
    defs = [
        _def(name="a", type="gauge"),
        _def(name="a", type="counter"),
        _def(name="", type="gauge"),
    ]
    with pytest.raises(DuplicateNameError):
        validate_definitions(defs)


def test_summary_without_objectives_uses_defaults():
    d = _def(name="s", type="summary")
    validate_definitions([d])
    assert d.effective_objectives == DEFAULT_OBJECTIVES


def test_metric_kind_parse():
    assert MetricKind.parse(" Histogram ") is MetricKind.HISTOGRAM
    with pytest.raises(UnsupportedKindError):
        MetricKind.parse("timer")


@pytest.mark.parametrize(
    "text, seconds",
    [("30s", 30), ("1m30s", 90), ("1h15m", 4500), ("500ms", 0.5), ("1.5h", 5400), ("0", 0)],
)
def test_parse_duration(text, seconds):
    assert parse_duration(text) == pytest.approx(seconds)


@pytest.mark.parametrize("text", ["", "30", "abc", "5d", "1m 30s"])
def test_parse_duration_rejects(text):
    with pytest.raises(ConfigValidationError):
        parse_duration(text)


def test_parse_address():
    assert parse_address(":8080") == ("0.0.0.0", 8080)
    assert parse_address("127.0.0.1:9000") == ("127.0.0.1", 9000)
    assert parse_address("[::1]:9100") == ("::1", 9100)
    for bad in ("localhost", "host:http", ":70000"):
        with pytest.raises(ConfigValidationError):
            parse_address(bad)
