from __future__ import annotations

"""Build metadata. Commit and date are overridden through settings at release time."""

__version__ = "0.1.0"

DEFAULT_COMMIT = "HEAD"
DEFAULT_DATE = "now"


def build_string(version: str, commit: str, date: str) -> str:
    """Return ``version (short-commit) date`` as shown by ``--version``."""

    short = commit[:7] if len(commit) > 7 else commit
    return f"{version} ({short}) {date}"
