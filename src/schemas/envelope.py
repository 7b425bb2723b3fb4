"""Uniform JSON envelopes returned for every response."""

import time
from typing import Any

from pydantic import BaseModel, Field


def _now() -> int:
    return int(time.time())


class Envelope(BaseModel):
    """Base for response envelopes; ``status`` doubles as the HTTP status."""

    status: int

    def to_json(self) -> str:
        return self.model_dump_json()


class SuccessEnvelope(Envelope):
    """Successful response: ``{status, data, timestamp}``."""

    data: Any = Field(default_factory=list)
    timestamp: int = Field(default_factory=_now)


class ErrorEnvelope(Envelope):
    """Failed response: ``{status, error, timestamp}``."""

    error: str
    timestamp: int = Field(default_factory=_now)


def success(data: Any = None, status_code: int = 200) -> SuccessEnvelope:
    """Wrap ``data`` in a success envelope; empty or missing data becomes ``[]``."""
    return SuccessEnvelope(status=status_code, data=data or [])


def failure(message: str, status_code: int = 400) -> ErrorEnvelope:
    """Build an error envelope carrying ``message``."""
    return ErrorEnvelope(status=status_code, error=message)
