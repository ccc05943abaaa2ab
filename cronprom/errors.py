from __future__ import annotations

"""Error types shared by the config loader, the collector and the push client.

Startup errors (config validation, registration) abort the process. Runtime
errors are reported back to whoever sent the update.
"""


class CronpromError(Exception):
    """Base exception for cronprom."""


class ConfigError(CronpromError):
    """Config file is missing, unreadable, or not valid YAML."""


class ConfigValidationError(CronpromError):
    """A metric definition or global setting is invalid."""


class EmptyNameError(ConfigValidationError):
    """Metric name is empty."""


class MissingBucketsError(ConfigValidationError):
    """Histogram defines no buckets."""


class InvalidBucketsError(ConfigValidationError):
    """Histogram buckets are not strictly ascending."""


class MissingObjectivesError(ConfigValidationError):
    """Summary defines no objectives."""


class InvalidObjectiveError(ConfigValidationError):
    """Summary objective quantile or error is out of range."""


class UnknownKindError(ConfigValidationError):
    """Definition names a metric type outside gauge, counter, histogram, summary."""


class DuplicateNameError(ConfigValidationError):
    """Two definitions share a name."""


class RegistrationError(CronpromError):
    """Registry could not be built from otherwise valid definitions."""


class MetricNotFoundError(CronpromError):
    """No metric of the requested type is registered under that name."""


class UnsupportedKindError(CronpromError):
    """Update request names an unsupported metric type."""


class InvalidLabelFormatError(CronpromError):
    """Label argument is not in key=value form."""
