from __future__ import annotations

"""Pydantic models for the push API contract."""

from typing import Any, Dict, Literal

from pydantic import BaseModel, Field, field_validator


class MetricUpdate(BaseModel):
    name: str = ""
    type: str = ""
    value: float = 0.0
    labels: Dict[str, str] = Field(default_factory=dict)

    @field_validator("labels", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class PushResponse(BaseModel):
    status: Literal["success"] = "success"


class HealthResponse(BaseModel):
    status: Literal["ok"] = "ok"
