"""Alpaca client error hierarchy.

All exceptions inherit from AlpacaError so callers can catch everything
raised by this package at one boundary. HTTP failures share APIError;
RetryExhaustedError is a subclass so it can be caught with the rest or
handled separately.
"""

from __future__ import annotations

from typing import Any


class AlpacaError(Exception):
    """Base exception for all alpaca_trade errors."""


class AlpacaConnectionError(AlpacaError):
    """Transport-level failure (DNS, refused connection, timeout)."""


class APIError(AlpacaError):
    """Non-2xx response from the Alpaca REST API.

    Stores the HTTP status code, the error message and the raw body.
    Alpaca error bodies look like ``{"code": 40010001, "message": "..."}``;
    ``code`` is populated when present.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        body: Any = None,
        code: int | None = None,
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.body = body
        self.code = code
        super().__init__(f"Alpaca API error {status_code}: {message}")


class AuthError(APIError):
    """Invalid or missing API credentials (HTTP 401/403)."""


class RetryExhaustedError(APIError):
    """A retryable status persisted through every allowed attempt."""

    def __init__(
        self,
        status_code: int,
        message: str,
        body: Any = None,
        code: int | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(status_code, message, body, code)
        self.attempts = attempts
        self.args = (
            f"Alpaca API error {status_code} after {attempts} attempt(s): {message}",
        )


class EntityMappingError(AlpacaError):
    """A response record does not fit the target entity's schema."""

    def __init__(self, entity: str, field: str, reason: str) -> None:
        self.entity = entity
        self.field = field
        self.reason = reason
        super().__init__(f"Cannot map {entity}.{field}: {reason}")


class PaginationError(AlpacaError):
    """A data page repeated an earlier token or had an unexpected shape."""
