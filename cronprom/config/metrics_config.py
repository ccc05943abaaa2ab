from __future__ import annotations

"""Metrics config file: pydantic models, YAML loading and definition validation.

Example file::

    web:
      address: :8080
    global:
      namespace: cron_monitor
      refresh_interval: 30s
    metrics:
      - name: job_last_success
        type: gauge
        labels: [job_name, environment]
"""

import math
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

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


DEFAULT_OBJECTIVES: Dict[float, float] = {0.5: 0.05, 0.9: 0.01, 0.99: 0.001}
DEFAULT_ADDRESS = ":8080"
DEFAULT_REFRESH_INTERVAL = "30s"


class MetricKind(str, Enum):
    GAUGE = "gauge"
    COUNTER = "counter"
    HISTOGRAM = "histogram"
    SUMMARY = "summary"

    @classmethod
    def parse(cls, value: str) -> MetricKind:
        """Parse an update request's type, raising UnsupportedKindError for anything else."""

        try:
            return cls(value.strip().lower())
        except (AttributeError, ValueError):
            raise UnsupportedKindError(f"unsupported metric type: {value}") from None


class MetricDefinition(BaseModel):
    """One entry of the ``metrics`` list. Immutable once loaded."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = ""
    description: str = ""
    kind: str = Field(default="", alias="type")
    labels: Tuple[str, ...] = ()
    default_value: float = 0.0
    buckets: Tuple[float, ...] = ()
    # None means "not configured" and falls back to DEFAULT_OBJECTIVES.
    objectives: Optional[Dict[float, float]] = None

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("labels", "buckets", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return () if v is None else v

    @property
    def metric_kind(self) -> MetricKind:
        try:
            return MetricKind(self.kind)
        except ValueError:
            raise UnknownKindError(f"unknown metric type '{self.kind}' for metric '{self.name}'") from None

    @property
    def effective_objectives(self) -> Dict[float, float]:
        if self.objectives is None:
            return dict(DEFAULT_OBJECTIVES)
        return dict(self.objectives)

    def validate_definition(self) -> None:
        """Check the kind-specific requirements of a single definition."""

        if not self.name:
            raise EmptyNameError("metric name cannot be empty")

        kind = self.metric_kind
        if kind is MetricKind.HISTOGRAM:
            if not self.buckets:
                raise MissingBucketsError(f"histogram metric '{self.name}' must define buckets")
            for lower, upper in zip(self.buckets, self.buckets[1:]):
                if not upper > lower:
                    raise InvalidBucketsError(
                        f"histogram metric '{self.name}' buckets must be strictly ascending, got {list(self.buckets)}"
                    )
        elif kind is MetricKind.SUMMARY:
            objectives = self.effective_objectives
            if not objectives:
                raise MissingObjectivesError(f"summary metric '{self.name}' must define objectives")
            for quantile, error in objectives.items():
                if not 0.0 < quantile < 1.0 or not 0.0 <= error < 1.0 or math.isnan(error):
                    raise InvalidObjectiveError(
                        f"summary metric '{self.name}' has invalid objective {quantile}: {error}"
                    )


def validate_definitions(definitions: Sequence[MetricDefinition]) -> None:
    """Validate definitions in order; the first problem found is raised."""

    seen: set[str] = set()
    for definition in definitions:
        definition.validate_definition()
        if definition.name in seen:
            raise DuplicateNameError(f"duplicate metric name: {definition.name}")
        seen.add(definition.name)


class WebConfig(BaseModel):
    address: str = DEFAULT_ADDRESS


class GlobalConfig(BaseModel):
    namespace: str = ""
    refresh_interval: str = DEFAULT_REFRESH_INTERVAL


class Config(BaseModel):
    """Root of the metrics config file."""

    model_config = ConfigDict(populate_by_name=True)

    global_settings: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    metrics: list[MetricDefinition] = Field(default_factory=list)
    web: WebConfig = Field(default_factory=WebConfig)

    @field_validator("metrics", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @property
    def namespace(self) -> str:
        return self.global_settings.namespace

    def validate_all(self) -> None:
        if not self.global_settings.namespace:
            raise ConfigValidationError("global namespace cannot be empty")
        parse_duration(self.global_settings.refresh_interval)
        parse_address(self.web.address)
        validate_definitions(self.metrics)


_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: str) -> float:
    """Parse a Go-style duration such as ``30s`` or ``1h15m`` into seconds."""

    text = value.strip()
    if not text:
        raise ConfigValidationError(f"invalid refresh interval: {value!r}")
    sign = -1.0 if text[0] == "-" else 1.0
    if text[0] in "+-":
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise ConfigValidationError(f"invalid refresh interval: {value!r}")

    total = 0.0
    pos = 0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ConfigValidationError(f"invalid refresh interval: {value!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return sign * total


def parse_address(address: str) -> Tuple[str, int]:
    """Split ``host:port`` (host optional, as in ``:8080``) into a bind pair."""

    host, sep, port_text = address.strip().rpartition(":")
    if not sep:
        raise ConfigValidationError(f"invalid web address: {address!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ConfigValidationError(f"invalid web address: {address!r}") from None
    if not 0 <= port <= 65535:
        raise ConfigValidationError(f"invalid web address: {address!r}")
    return host.strip("[]") or "0.0.0.0", port


def load_config_from_dict(raw: Dict[str, Any]) -> Config:
    """Build and validate a Config from already-parsed data."""

    try:
        config = Config.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"error parsing config file: {exc}") from exc
    config.validate_all()
    return config


def load_config(path: Union[str, Path]) -> Config:
    """Read, parse and validate the YAML config file at ``path``."""

    p = Path(path)
    try:
        with open(p, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"error reading config file: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"error parsing config file: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"error parsing config file: expected a mapping in {p}")
    return load_config_from_dict(raw)
