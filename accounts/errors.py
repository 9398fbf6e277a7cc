"""Typed failures raised by the account service."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Mapping, Optional


class AccountError(Exception):
    """Base class for every failure the account service reports to its callers.

    ``code`` is a stable identifier boundary layers can branch on, and
    ``details`` carries structured diagnostics (store conflict codes, the
    offending field, ...) instead of ad hoc attributes.
    """

    code = "account_error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        if code is not None:
            self.code = code
        self.message = message or self.code.replace("_", " ")
        self.details: Dict[str, Any] = dict(details) if details else {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class ValidationError(AccountError, ValueError):
    """Caller input is missing or malformed."""

    code = "validation_error"


class NotFoundError(AccountError, LookupError):
    code = "not_found"


class AlreadyExistsError(AccountError):
    """A write collided with another record's unique fields."""

    code = "already_exists"


class InvalidEmailFormatError(AccountError):
    code = "invalid_email_format"


class UnauthorizedError(AccountError):
    code = "unauthorized"


class TokenInvalidError(AccountError):
    code = "token_invalid"


class TokenExpiredError(AccountError):
    """The token carried a valid signature but its ``exp`` claim has passed."""

    code = "token_expired"

    def __init__(self, expired_at: datetime, message: Optional[str] = None) -> None:
        self.expired_at = expired_at
        super().__init__(
            message or f"Token expired at {expired_at.isoformat()}",
            details={"expired_at": expired_at.isoformat()},
        )


class CryptoError(AccountError, RuntimeError):
    """A stored credential could not be parsed by the hashing primitive."""

    code = "crypto_error"


class ConfigError(AccountError, RuntimeError):
    code = "config_error"


__all__ = [
    "AccountError",
    "AlreadyExistsError",
    "ConfigError",
    "CryptoError",
    "InvalidEmailFormatError",
    "NotFoundError",
    "TokenExpiredError",
    "TokenInvalidError",
    "UnauthorizedError",
    "ValidationError",
]
