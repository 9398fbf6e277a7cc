"""User account service: credential storage, login and self-service profile updates."""

from __future__ import annotations

from .config import Settings, load_settings, resolve_database_path
from .database import Database
from .errors import (
    AccountError,
    AlreadyExistsError,
    ConfigError,
    CryptoError,
    InvalidEmailFormatError,
    NotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    UnauthorizedError,
    ValidationError,
)
from .models import AuthenticatedSession, Credential, DatabaseUser, User
from .passwords import PasswordCrypto
from .service import AccountService, build_account_service
from .tokens import TokenService

__all__ = [
    "AccountError",
    "AccountService",
    "AlreadyExistsError",
    "AuthenticatedSession",
    "ConfigError",
    "Credential",
    "CryptoError",
    "Database",
    "DatabaseUser",
    "InvalidEmailFormatError",
    "NotFoundError",
    "PasswordCrypto",
    "Settings",
    "TokenExpiredError",
    "TokenInvalidError",
    "TokenService",
    "UnauthorizedError",
    "User",
    "ValidationError",
    "build_account_service",
    "load_settings",
    "resolve_database_path",
]
