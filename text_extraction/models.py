"""Pydantic schemas for extraction backend responses.

Backend JSON is validated here, at the transport boundary, and converted
into the closed ``TaskStatus`` variant. Anything that does not fit is a
protocol error rather than a guess.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class SubmitResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    task_id: str = Field(..., min_length=1)


class ResultPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    content: str
    metadata: dict[str, Any] | None = None


class StatusResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: Literal["pending", "processing", "completed", "failed"]
    result: ResultPayload | None = None
    error: str | None = None
