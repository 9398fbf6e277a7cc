"""Domain models for user accounts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict


@dataclass(frozen=True)
class User:
    """Public view of an account. Never carries credential material."""

    id: str
    real_name: str
    user_name: str
    email: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "real_name": self.real_name,
            "user_name": self.user_name,
            "email": self.email,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class Credential:
    """The stored salt and hash pair for a user's current password."""

    password_hash: str
    salt: str

    def __repr__(self) -> str:
        return "Credential(password_hash='***', salt='***')"


@dataclass(frozen=True)
class DatabaseUser:
    """Internal view of an account as persisted by the store."""

    id: str
    real_name: str
    user_name: str
    email: str
    credential: Credential
    created_at: datetime
    updated_at: datetime

    def to_public(self) -> User:
        return User(
            id=self.id,
            real_name=self.real_name,
            user_name=self.user_name,
            email=self.email,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class AuthenticatedSession:
    """Result of a successful login: the public user and their bearer token."""

    user: User
    token: str

    def to_dict(self) -> Dict[str, Any]:
        return {"user": self.user.to_dict(), "token": self.token}


__all__ = ["AuthenticatedSession", "Credential", "DatabaseUser", "User"]
