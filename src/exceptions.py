"""Errors surfaced to API clients as failure envelopes."""


class ApiError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PayloadValidationError(ApiError):
    """A request body is missing a required field."""

    status_code = 400


class StorageError(ApiError):
    """A statement failed in the underlying database."""

    status_code = 500
