"""User request schemas."""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from src.exceptions import PayloadValidationError


class UserPayload(BaseModel):
    """Body accepted by the create and update endpoints."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, max_length=255)
    email: str | None = Field(None, max_length=255)

    @classmethod
    def from_body(cls, body: Mapping[str, Any]) -> "UserPayload":
        """Validate a decoded request body, requiring a non-empty name."""
        # Checked first so a missing name wins over any other field error
        if not body.get("name"):
            raise PayloadValidationError("Name is required")

        try:
            return cls.model_validate(dict(body))
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(part) for part in error["loc"])
            raise PayloadValidationError(f"{field}: {error['msg']}") from e
