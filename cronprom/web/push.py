from __future__ import annotations

"""Push endpoint: job runners POST one metric update per request."""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from cronprom.errors import CronpromError
from cronprom.schemas.push_io import MetricUpdate, PushResponse
from cronprom.services.collector import MetricCollector
from cronprom.services.logging import get_logger


router = APIRouter()
logger = get_logger()


def get_collector(request: Request) -> MetricCollector:
    return request.app.state.collector


def _reject(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)


@router.post("/api/v1/push", response_model=PushResponse)
async def push_metric(request: Request, collector: MetricCollector = Depends(get_collector)) -> PushResponse:
    try:
        body = await request.json()
    except ValueError:
        raise _reject("error parsing JSON") from None
    try:
        update = MetricUpdate.model_validate(body)
    except ValidationError as exc:
        raise _reject(f"invalid metric update: {exc.errors(include_url=False)}") from None

    try:
        collector.apply(update.type, update.name, update.value, update.labels)
    except (CronpromError, ValueError) as exc:
        logger.warning("push_rejected", metric=update.name, type=update.type, error=str(exc))
        raise _reject(str(exc)) from exc

    return PushResponse()
