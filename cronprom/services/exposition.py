from __future__ import annotations

"""Prometheus text exposition (format 0.0.4) for the registry's aggregations.

Output is deterministic: families come in the order given (the registry sorts
them by name), series are sorted by their label pairs, and label pairs are
sorted by label name. Families without any series are omitted.
"""

import math
from typing import Iterable, List, Sequence, Tuple

from cronprom.config.metrics_config import MetricKind


CONTENT_TYPE = "text/plain; version=0.0.4; charset=utf-8"

LabelPairs = Sequence[Tuple[str, str]]


def format_value(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    if float(value).is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(float(value))


def _escape_label_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _escape_help(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\n", "\\n")


def _labels(pairs: LabelPairs) -> str:
    if not pairs:
        return ""
    return "{" + ",".join(f'{k}="{_escape_label_value(v)}"' for k, v in pairs) + "}"


def render_text(aggregations: Iterable) -> str:
    lines: List[str] = []
    for aggregation in aggregations:
        rows = [
            (sorted(zip(aggregation.label_names, values)), sample)
            for values, sample in aggregation.collect()
        ]
        if not rows:
            continue
        rows.sort(key=lambda row: row[0])

        name = aggregation.name
        help_text = _escape_help(aggregation.help)
        lines.append(f"# HELP {name} {help_text}" if help_text else f"# HELP {name}")
        lines.append(f"# TYPE {name} {aggregation.kind.value}")

        for pairs, sample in rows:
            if aggregation.kind is MetricKind.HISTOGRAM:
                for bound, count in sample.buckets:
                    lines.append(f"{name}_bucket{_labels([*pairs, ('le', format_value(bound))])} {count}")
                lines.append(f"{name}_sum{_labels(pairs)} {format_value(sample.sum)}")
                lines.append(f"{name}_count{_labels(pairs)} {sample.count}")
            elif aggregation.kind is MetricKind.SUMMARY:
                for quantile, value in sample.quantiles:
                    lines.append(f"{name}{_labels([*pairs, ('quantile', format_value(quantile))])} {format_value(value)}")
                lines.append(f"{name}_sum{_labels(pairs)} {format_value(sample.sum)}")
                lines.append(f"{name}_count{_labels(pairs)} {sample.count}")
            else:
                lines.append(f"{name}{_labels(pairs)} {format_value(sample)}")
    if not lines:
        return ""
    return "\n".join(lines) + "\n"
