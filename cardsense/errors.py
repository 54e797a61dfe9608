"""Service-level exceptions mapped to HTTP responses in main.

Each error carries its status code and a stable machine code so the
exception handlers can render the same `{"error": {...}}` envelope used
for validation failures.
"""

from __future__ import annotations

from typing import Any


class CardSenseError(Exception):
    """Base error with an HTTP status and a stable error code."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


class CatalogUnavailableError(CardSenseError):
    """Neither the card table nor the fallback list produced usable cards."""

    status_code = 503
    code = "CATALOG_UNAVAILABLE"


class RateLimitedError(CardSenseError):
    """Too many recommendation requests inside the current window."""

    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            f"Too many recommendation requests. Try again in {retry_after}s.",
            details={"retry_after": retry_after},
        )
        self.retry_after = retry_after


class CardNotFoundError(CardSenseError):
    status_code = 404
    code = "CARD_NOT_FOUND"


class TransactionNotFoundError(CardSenseError):
    status_code = 404
    code = "TRANSACTION_NOT_FOUND"


class InvalidRequestError(CardSenseError):
    """A request that passed schema validation but is inconsistent."""

    status_code = 400
    code = "VALIDATION_ERROR"


class SessionStoreUnavailableError(CardSenseError):
    """The advisor session store (Redis) cannot be reached."""

    status_code = 503
    code = "SESSION_STORE_UNAVAILABLE"
