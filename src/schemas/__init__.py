"""Pydantic schemas for API requests and responses."""

from src.schemas.envelope import ErrorEnvelope, SuccessEnvelope, failure, success
from src.schemas.user import UserPayload

__all__ = [
    "ErrorEnvelope",
    "SuccessEnvelope",
    "UserPayload",
    "failure",
    "success",
]
