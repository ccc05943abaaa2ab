from __future__ import annotations

"""Metric and label name rules of the Prometheus data model."""

import re


_LABEL_NAME = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")


def sanitize_metric_name(name: str) -> str:
    """Map every character outside ``[A-Za-z0-9_]`` to ``_``; prefix a leading digit with ``_``."""

    sanitized = "".join(ch if (ch.isascii() and ch.isalnum()) or ch == "_" else "_" for ch in name)
    if sanitized[:1].isdigit():
        sanitized = "_" + sanitized
    return sanitized


def build_fq_name(namespace: str, name: str) -> str:
    """Join the non-empty parts with ``_``."""

    return "_".join(part for part in (namespace, name) if part)


def is_valid_label_name(name: str) -> bool:
    # Names starting with __ are reserved for Prometheus internal use.
    return bool(_LABEL_NAME.match(name)) and not name.startswith("__")
