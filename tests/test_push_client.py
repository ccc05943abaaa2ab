from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from cronprom.errors import InvalidLabelFormatError, UnsupportedKindError
from cronprom.schemas.push_io import MetricUpdate
from cronprom.services.push_client import build_update, parse_label, push_update


URL = "http://cronprom.test/api/v1/push"


def test_parse_label_splits_on_first_equals():
    assert parse_label("job_name=backup") == ("job_name", "backup")
    assert parse_label("query=a=b") == ("query", "a=b")
    assert parse_label("empty=") == ("empty", "")
    with pytest.raises(InvalidLabelFormatError) as exc:
        parse_label("no-separator")
    assert "invalid label format: no-separator" in str(exc.value)


def test_build_update():
    update = build_update("job_failures_total", "counter", 1, ["job_name=backup", "environment=prod"])
    assert update == MetricUpdate(
        name="job_failures_total",
        type="counter",
        value=1.0,
        labels={"job_name": "backup", "environment": "prod"},
    )


def test_build_update_checks_type_first():
    with pytest.raises(UnsupportedKindError):
        build_update("x", "timer", 1, ["broken"])


def test_push_update_posts_json():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "success"})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await push_update(URL, build_update("job_last_success", "gauge", 17, ["job_name=a"]), client=client)

    asyncio.run(run())

    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert str(seen[0].url) == URL
    assert json.loads(seen[0].content) == {
        "name": "job_last_success",
        "type": "gauge",
        "value": 17.0,
        "labels": {"job_name": "a"},
    }


@pytest.mark.parametrize("status", [201, 400, 500])
def test_push_update_requires_200(status):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, text="nope")

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            await push_update(URL, MetricUpdate(name="a", type="gauge", value=1), client=client)

    with pytest.raises(httpx.HTTPStatusError) as exc:
        asyncio.run(run())
    assert f"unexpected status code: {status}" in str(exc.value)
