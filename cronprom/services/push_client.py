from __future__ import annotations

"""HTTP client for the push endpoint, used by ``cronprom push``."""

from contextlib import asynccontextmanager
from time import perf_counter
from typing import AsyncIterator, Iterable, Optional, Tuple

import httpx

from cronprom.config.metrics_config import MetricKind
from cronprom.errors import InvalidLabelFormatError
from cronprom.schemas.push_io import MetricUpdate
from cronprom.services.logging import get_logger


DEFAULT_TIMEOUT_SECONDS = 10.0


@asynccontextmanager
async def _client(timeout: float) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout)) as client:
        yield client


def parse_label(label: str) -> Tuple[str, str]:
    """Split ``key=value`` on the first ``=``."""

    key, sep, value = label.partition("=")
    if not sep:
        raise InvalidLabelFormatError(f"invalid label format: {label} (expected key=value)")
    return key, value


def build_update(name: str, metric_type: str, value: float, labels: Iterable[str] = ()) -> MetricUpdate:
    """Validate CLI input and assemble the request body.

    The type is checked before labels are parsed so an obviously wrong command
    fails on the first problem.
    """

    MetricKind.parse(metric_type)
    parsed = dict(parse_label(label) for label in labels)
    return MetricUpdate(name=name, type=metric_type, value=value, labels=parsed)


async def push_update(
    url: str,
    update: MetricUpdate,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> None:
    """POST the update and require a 200 answer.

    Raises httpx.HTTPError on network errors and httpx.HTTPStatusError on any
    other status code.
    """

    payload = update.model_dump(mode="json")
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    logger = get_logger().bind(metric=update.name, type=update.type)
    logger.debug("sending_metric_update", url=url, value=update.value, labels=update.labels)

    start = perf_counter()
    if client is None:
        async with _client(timeout) as owned:
            resp = await owned.post(url, json=payload, headers=headers)
    else:
        resp = await client.post(url, json=payload, headers=headers)

    if resp.status_code != httpx.codes.OK:
        logger.warning("metric_update_rejected", status=resp.status_code, body=resp.text[:200])
        raise httpx.HTTPStatusError(
            f"unexpected status code: {resp.status_code}",
            request=resp.request,
            response=resp,
        )

    elapsed_ms = int((perf_counter() - start) * 1000)
    logger.info("metric_update_sent", value=update.value, elapsed_ms=elapsed_ms)
