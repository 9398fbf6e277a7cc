"""Issue and verify signed session tokens."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional
from uuid import uuid4

import jwt

from .config import Settings
from .errors import ConfigError, TokenExpiredError, TokenInvalidError, ValidationError

logger = logging.getLogger("accounts.tokens")

ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["exp", "iat", "iss", "sub", "jti"]


class TokenService:
    """HS256 JWT issuance bound to the process-wide signing secret."""

    def __init__(
        self,
        secret: str,
        *,
        issuer: str,
        default_ttl: timedelta,
        leeway: timedelta = timedelta(0),
    ) -> None:
        if not secret:
            raise ConfigError(
                "A token signing secret must be configured", details={"setting": "token_secret"}
            )
        self._secret = secret
        self._issuer = issuer
        self._default_ttl = default_ttl
        self._leeway = leeway

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(settings.token_secret, issuer=settings.token_issuer, default_ttl=settings.token_ttl)

    @property
    def issuer(self) -> str:
        return self._issuer

    @property
    def default_ttl(self) -> timedelta:
        return self._default_ttl

    def sign(
        self,
        claims: Mapping[str, Any],
        *,
        subject: Optional[str] = None,
        expires_in: Optional[timedelta] = None,
    ) -> str:
        """Sign ``claims`` into a token.

        ``iss``, ``jti`` and ``iat`` are always set here and override anything
        the caller passed. ``sub`` defaults to ``claims["id"]``.
        """

        if subject is None:
            if claims.get("id") is None:
                raise ValidationError("Token subject is required", details={"claim": "sub"})
            subject = str(claims["id"])

        now = self._now()
        lifetime = self._default_ttl if expires_in is None else expires_in

        payload: Dict[str, Any] = dict(claims)
        payload.update(
            {
                "sub": subject,
                "iss": self._issuer,
                "jti": str(uuid4()),
                "iat": int(now.timestamp()),
                "exp": int((now + lifetime).timestamp()),
            }
        )
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> Dict[str, Any]:
        """Return the claims carried by ``token``.

        Raises :class:`TokenExpiredError` once ``exp`` has passed and
        :class:`TokenInvalidError` for bad signatures or malformed tokens.
        """

        if not token:
            raise TokenInvalidError("Token must not be empty")

        try:
            return jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                leeway=self._leeway,
                options={"require": _REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            # The signature is checked before expiry, so the payload is authentic here.
            unverified = jwt.decode(token, options={"verify_signature": False})
            expired_at = datetime.fromtimestamp(int(unverified["exp"]), tz=timezone.utc)
            raise TokenExpiredError(expired_at) from exc
        except jwt.InvalidTokenError as exc:
            logger.warning("Rejected session token: %s", type(exc).__name__)
            raise TokenInvalidError("Token is not valid", details={"reason": type(exc).__name__}) from exc

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)


__all__ = ["ALGORITHM", "TokenService"]
