"""Account lifecycle operations: creation, lookup, profile updates and login."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, NoReturn, Optional
from uuid import UUID, uuid4

from .config import Settings
from .database import CHECK, UNIQUE, Database, StoreConflictError
from .errors import (
    AlreadyExistsError,
    InvalidEmailFormatError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from .models import AuthenticatedSession, DatabaseUser
from .passwords import PasswordCrypto
from .tokens import TokenService

logger = logging.getLogger("accounts.service")


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _advance(previous: datetime) -> datetime:
    """Return the current time, strictly later than ``previous``."""

    now = _current_timestamp()
    if now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def _require(**values: Optional[str]) -> None:
    missing = sorted(name for name, value in values.items() if not value)
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"fields": missing},
        )


def _validate_user_id(user_id: str) -> str:
    try:
        parsed = UUID(user_id)
    except (ValueError, TypeError, AttributeError) as exc:
        raise ValidationError("Invalid uuid format", details={"id": user_id}) from exc
    if str(parsed) != user_id.lower():
        raise ValidationError("Invalid uuid format", details={"id": user_id})
    return str(parsed)


def _translate_conflict(exc: StoreConflictError) -> NoReturn:
    if exc.kind == UNIQUE:
        raise AlreadyExistsError("Given user already exists", details=exc.as_details()) from exc
    if exc.kind == CHECK and exc.constraint and "email" in exc.constraint:
        raise InvalidEmailFormatError("Invalid email format", details=exc.as_details()) from exc
    raise exc


class AccountService:
    """Business rules that sit between the credential primitives and the store."""

    def __init__(self, database: Database, passwords: PasswordCrypto, tokens: TokenService) -> None:
        self._database = database
        self._passwords = passwords
        self._tokens = tokens

    # ------------------------------------------------------------------
    # Creation and lookup
    # ------------------------------------------------------------------
    def create_user(self, real_name: str, user_name: str, email: str, password: str) -> DatabaseUser:
        """Create a new account and return its stored record.

        The returned record still holds the credential; convert it with
        :meth:`DatabaseUser.to_public` before handing it to a client.
        """

        _require(real_name=real_name, user_name=user_name, email=email, password=password)

        now = _current_timestamp()
        credential = self._passwords.hash_password(password)
        record = DatabaseUser(
            id=str(uuid4()),
            real_name=real_name,
            user_name=user_name,
            email=email,
            credential=credential,
            created_at=now,
            updated_at=now,
        )

        try:
            created = self._database.insert_user(record)
        except StoreConflictError as exc:
            logger.info("Rejected new account %s: %s", user_name, exc.code)
            _translate_conflict(exc)

        logger.info("Created user %s", created.id)
        return created

    def get_user_by_id(self, user_id: str) -> DatabaseUser:
        normalized = _validate_user_id(user_id)
        user = self._database.get_user(normalized)
        if user is None:
            raise NotFoundError("User not found", details={"id": normalized})
        return user

    def get_user_by_email(self, email: str) -> DatabaseUser:
        _require(email=email)
        user = self._database.get_user_by_email(email)
        if user is None:
            raise NotFoundError("User with given email not found", details={"email": email})
        return user

    def list_users(self) -> List[DatabaseUser]:
        # TODO: paginate once the store grows past what fits in one response.
        return self._database.list_users()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------
    def update_user(
        self,
        user_id: str,
        *,
        real_name: Optional[str] = None,
        user_name: Optional[str] = None,
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> DatabaseUser:
        """Rewrite every profile field, defaulting omitted ones to the stored values.

        The credential is re-hashed only when ``password`` is given; otherwise
        the stored hash and salt are carried forward unchanged.
        """

        current = self.get_user_by_id(user_id)

        if password:
            credential = self._passwords.hash_password(password)
        else:
            credential = current.credential

        try:
            updated = self._database.update_user(
                current.id,
                real_name=real_name or current.real_name,
                user_name=user_name or current.user_name,
                email=email or current.email,
                password_hash=credential.password_hash,
                salt=credential.salt,
                updated_at=_advance(current.updated_at),
            )
        except StoreConflictError as exc:
            logger.info("Rejected update for user %s: %s", current.id, exc.code)
            _translate_conflict(exc)

        if updated is None:
            raise NotFoundError("User not found", details={"id": current.id})

        logger.info("Updated user %s (password changed: %s)", updated.id, bool(password))
        return updated

    def change_password(self, user_id: str, old_password: str, new_password: str) -> DatabaseUser:
        """Replace the credential after proving knowledge of the current password."""

        normalized = _validate_user_id(user_id)
        _require(old_password=old_password, new_password=new_password)

        current = self.get_user_by_id(normalized)
        stored = current.credential
        if not self._passwords.compare_hash(old_password, stored.salt, stored.password_hash):
            logger.warning("Rejected password change for user %s", current.id)
            raise UnauthorizedError("Current password is incorrect")

        credential = self._passwords.hash_password(new_password)
        updated = self._database.update_user(
            current.id,
            password_hash=credential.password_hash,
            salt=credential.salt,
            updated_at=_advance(current.updated_at),
        )
        if updated is None:
            raise NotFoundError("User not found", details={"id": current.id})

        logger.info("Changed password for user %s", updated.id)
        return updated

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def authenticate(self, email: str, password: str) -> AuthenticatedSession:
        """Check ``password`` for the account at ``email`` and issue a session token."""

        _require(email=email, password=password)

        user = self.get_user_by_email(email)
        stored = user.credential
        if not self._passwords.compare_hash(password, stored.salt, stored.password_hash):
            logger.warning("Failed login attempt for %s", email)
            raise UnauthorizedError("Invalid credentials")

        token = self._tokens.sign({"id": user.id, "user_name": user.user_name})
        logger.info("User %s signed in", user.id)
        return AuthenticatedSession(user=user.to_public(), token=token)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """Return the claims of a session token issued by :meth:`authenticate`."""

        return self._tokens.verify(token)


def build_account_service(settings: Settings, database: Optional[Database] = None) -> AccountService:
    """Wire an :class:`AccountService` from loaded settings."""

    if database is None:
        database = Database(settings.database_path)
        database.initialize()
    return AccountService(
        database,
        PasswordCrypto.from_settings(settings),
        TokenService.from_settings(settings),
    )


__all__ = ["AccountService", "build_account_service"]
