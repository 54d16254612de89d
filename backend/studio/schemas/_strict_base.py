"""Strict schema bases shared by the booking API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from ..core.clock import ensure_utc


class StrictModel(BaseModel):
    """Response base; unknown fields are a programming error."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StrictRequestModel(StrictModel):
    """
    Request base.

    Unknown fields are rejected and every datetime is read as aware UTC, so
    payloads mixing offset and naive timestamps compare safely in validators.
    """

    @field_validator("*")
    @classmethod
    def _datetimes_as_utc(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return ensure_utc(v)
        return v
