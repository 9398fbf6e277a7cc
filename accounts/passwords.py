"""Password hashing, salting and peppering."""
from __future__ import annotations

import logging
import secrets

from passlib.context import CryptContext

from .config import Settings
from .errors import ConfigError, CryptoError, ValidationError
from .models import Credential

logger = logging.getLogger("accounts.passwords")

SALT_BYTES = 16
# bcrypt_sha256 pre-hashes the secret, so salt + password + pepper is never
# silently truncated at bcrypt's 72 byte limit.
_SCHEME = "bcrypt_sha256"


def generate_salt() -> str:
    """Return a fresh hex-encoded salt (``2 * SALT_BYTES`` characters)."""

    return secrets.token_hex(SALT_BYTES)


class PasswordCrypto:
    """Salted, peppered bcrypt hashing bound to a process-wide pepper."""

    def __init__(self, pepper: str, *, rounds: int) -> None:
        if not pepper:
            raise ConfigError("Pepper must not be empty", details={"setting": "pepper"})
        self._pepper = pepper
        self._context = CryptContext(schemes=[_SCHEME], **{f"{_SCHEME}__default_rounds": rounds})

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordCrypto":
        return cls(settings.pepper, rounds=settings.bcrypt_rounds)

    def _season(self, password: str, salt: str) -> str:
        return f"{salt}{password}{self._pepper}"

    def hash_password(self, password: str, *, salt: str | None = None) -> Credential:
        """Hash ``password`` under a new salt and return the pair to persist.

        ``salt`` may be supplied only to pin the salt in tests; production
        callers always receive a freshly generated one.
        """

        if not password:
            raise ValidationError("Password must not be empty", details={"field": "password"})
        if salt is None:
            salt = generate_salt()
        password_hash = self._context.hash(self._season(password, salt))
        return Credential(password_hash=password_hash, salt=salt)

    def compare_hash(self, password: str, salt: str, password_hash: str) -> bool:
        """Return ``True`` when ``password`` reproduces the stored hash.

        Raises :class:`CryptoError` if the stored hash is corrupt.
        """

        try:
            return bool(self._context.verify(self._season(password, salt), password_hash))
        except (ValueError, TypeError) as exc:
            logger.error("Stored password hash could not be parsed")
            raise CryptoError("Stored password hash is malformed") from exc


__all__ = ["PasswordCrypto", "SALT_BYTES", "generate_salt"]
