from __future__ import annotations

"""Reconcile an update's labels with the label names a metric declares.

Aggregations need one value for every declared label and nothing else, so
missing labels are filled with a placeholder and unknown ones are dropped.
Both adjustments are logged.
"""

from typing import Dict, Mapping, Optional, Protocol

from cronprom.config.metrics_config import MetricDefinition
from cronprom.errors import MetricNotFoundError
from cronprom.services.logging import get_logger


MISSING_LABEL_FILLER = "<missing>"

logger = get_logger()


class DefinitionLookup(Protocol):
    def definition(self, name: str) -> Optional[MetricDefinition]:
        ...


def normalize_labels(
    lookup: DefinitionLookup,
    metric_name: str,
    labels: Optional[Mapping[str, str]],
) -> Dict[str, str]:
    """Return a new label map whose keys are exactly the metric's declared labels.

    Raises MetricNotFoundError when ``metric_name`` has no definition. The
    caller's mapping is left untouched.
    """

    definition = lookup.definition(metric_name)
    if definition is None:
        raise MetricNotFoundError(f"metric '{metric_name}' not found")

    given = dict(labels or {})
    declared = set(definition.labels)
    normalized: Dict[str, str] = {}
    for label in definition.labels:
        if label in given:
            normalized[label] = given[label]
        else:
            normalized[label] = MISSING_LABEL_FILLER
            logger.info("adding_missing_label", metric=metric_name, label=label)

    for key in given:
        if key not in declared:
            logger.info("removing_extra_label", metric=metric_name, label=key)

    return normalized
