"""SQLite-backed persistence for user accounts."""
from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import Credential, DatabaseUser

logger = logging.getLogger("accounts.database")

UNIQUE = "unique"
CHECK = "check"


class StoreConflictError(Exception):
    """A write was rejected by a uniqueness or check constraint."""

    def __init__(self, kind: str, code: str, constraint: Optional[str], message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.code = code
        self.constraint = constraint

    def as_details(self) -> Dict[str, Any]:
        return {"constraint_code": self.code, "constraint": self.constraint}


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _conflict_from_integrity_error(exc: sqlite3.IntegrityError) -> Optional[StoreConflictError]:
    message = str(exc)
    code = getattr(exc, "sqlite_errorname", None)
    if message.startswith("UNIQUE constraint failed"):
        kind = UNIQUE
        code = code or "SQLITE_CONSTRAINT_UNIQUE"
    elif message.startswith("CHECK constraint failed"):
        kind = CHECK
        code = code or "SQLITE_CONSTRAINT_CHECK"
    else:
        return None
    _, _, constraint = message.partition(":")
    return StoreConflictError(kind, code, constraint.strip() or None, message)


class Database:
    """Simple wrapper around SQLite for persisting user accounts."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    real_name TEXT NOT NULL,
                    user_name TEXT NOT NULL UNIQUE,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    salt TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    CONSTRAINT users_email_format CHECK (email LIKE '%@%')
                );
                """
            )

    # ------------------------------------------------------------------
    # User records
    # ------------------------------------------------------------------
    def insert_user(self, user: DatabaseUser) -> DatabaseUser:
        """Persist a new account, raising :class:`StoreConflictError` on constraint violations."""

        with self._connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO users (
                        id,
                        real_name,
                        user_name,
                        email,
                        password_hash,
                        salt,
                        created_at,
                        updated_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user.id,
                        user.real_name,
                        user.user_name,
                        user.email,
                        user.credential.password_hash,
                        user.credential.salt,
                        _serialize_datetime(user.created_at),
                        _serialize_datetime(user.updated_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                conflict = _conflict_from_integrity_error(exc)
                if conflict is None:
                    raise
                raise conflict from exc

        stored = self.get_user(user.id)
        if stored is None:
            raise RuntimeError("Failed to load user after creation")
        return stored

    def get_user(self, user_id: str) -> Optional[DatabaseUser]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> Optional[DatabaseUser]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE email = ?", (email,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def list_users(self) -> List[DatabaseUser]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY created_at, id").fetchall()
        return [self._row_to_user(row) for row in rows]

    def update_user(self, user_id: str, **fields: object) -> Optional[DatabaseUser]:
        """Rewrite the given columns and return the refreshed record.

        Returns ``None`` when no row matches ``user_id``.
        """

        if not fields:
            return self.get_user(user_id)

        allowed = {
            "real_name": "real_name",
            "user_name": "user_name",
            "email": "email",
            "password_hash": "password_hash",
            "salt": "salt",
            "updated_at": "updated_at",
        }

        unknown = set(fields) - set(allowed)
        if unknown:
            raise ValueError(f"Unknown user columns: {', '.join(sorted(unknown))}")

        updates: List[str] = []
        values: List[object] = []
        for key, column in allowed.items():
            if key not in fields:
                continue
            value = fields[key]
            if value is None:
                raise ValueError(f"Column {column} must not be NULL")
            if isinstance(value, datetime):
                value = _serialize_datetime(value)
            updates.append(f"{column} = ?")
            values.append(value)

        values.append(user_id)
        query = f"UPDATE users SET {', '.join(updates)} WHERE id = ?"

        with self._connect() as conn:
            try:
                cursor = conn.execute(query, values)
            except sqlite3.IntegrityError as exc:
                conflict = _conflict_from_integrity_error(exc)
                if conflict is None:
                    raise
                raise conflict from exc
            if cursor.rowcount == 0:
                return None

        return self.get_user(user_id)

    def truncate(self) -> None:
        """Remove every account. Intended for test fixtures only."""

        with self._connect() as conn:
            conn.execute("DELETE FROM users")
        logger.debug("Truncated users table at %s", self._path)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_user(self, row: sqlite3.Row) -> DatabaseUser:
        return DatabaseUser(
            id=str(row["id"]),
            real_name=str(row["real_name"]),
            user_name=str(row["user_name"]),
            email=str(row["email"]),
            credential=Credential(password_hash=str(row["password_hash"]), salt=str(row["salt"])),
            created_at=_parse_datetime(str(row["created_at"])),
            updated_at=_parse_datetime(str(row["updated_at"])),
        )


__all__ = ["CHECK", "Database", "StoreConflictError", "UNIQUE"]
