"""Configuration management for the account service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from .errors import ConfigError

DEFAULT_TOKEN_ISSUER = "cuddly-waffle-fantastic"
DEFAULT_TOKEN_TTL_SECONDS = 3 * 60 * 60
DEFAULT_BCRYPT_ROUNDS = 10
MINIMUM_BCRYPT_ROUNDS = 10
MAXIMUM_BCRYPT_ROUNDS = 31

_ENV_KEYS = {
    "pepper": "ACCOUNTS_PEPPER",
    "token_secret": "ACCOUNTS_TOKEN_SECRET",
    "token_ttl_seconds": "ACCOUNTS_TOKEN_TTL_SECONDS",
    "token_issuer": "ACCOUNTS_TOKEN_ISSUER",
    "bcrypt_rounds": "ACCOUNTS_BCRYPT_ROUNDS",
    "database_path": "ACCOUNTS_DB_PATH",
}


@dataclass(frozen=True)
class Settings:
    """Process-wide secrets and tunables, loaded once at startup."""

    pepper: str
    token_secret: str
    database_path: Path
    token_ttl: timedelta = timedelta(seconds=DEFAULT_TOKEN_TTL_SECONDS)
    token_issuer: str = DEFAULT_TOKEN_ISSUER
    bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS

    def __post_init__(self) -> None:
        if not self.pepper:
            raise ConfigError("A password pepper must be configured", details={"setting": "pepper"})
        if not self.token_secret:
            raise ConfigError(
                "A token signing secret must be configured", details={"setting": "token_secret"}
            )
        if self.token_ttl <= timedelta(0):
            raise ConfigError("Token lifetime must be positive", details={"setting": "token_ttl"})
        if self.bcrypt_rounds < MINIMUM_BCRYPT_ROUNDS:
            raise ConfigError(
                f"bcrypt cost must be at least {MINIMUM_BCRYPT_ROUNDS}",
                details={"setting": "bcrypt_rounds", "value": self.bcrypt_rounds},
            )
        if self.bcrypt_rounds > MAXIMUM_BCRYPT_ROUNDS:
            raise ConfigError(
                f"bcrypt cost must be at most {MAXIMUM_BCRYPT_ROUNDS}",
                details={"setting": "bcrypt_rounds", "value": self.bcrypt_rounds},
            )
        if not self.token_issuer:
            raise ConfigError("Token issuer must not be empty", details={"setting": "token_issuer"})

    def __repr__(self) -> str:
        return (
            f"Settings(database_path={str(self.database_path)!r}, token_ttl={self.token_ttl!r}, "
            f"token_issuer={self.token_issuer!r}, bcrypt_rounds={self.bcrypt_rounds!r})"
        )


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the account database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "accounts.sqlite3").resolve(strict=False)


def _load_file_values(config_path: Path) -> Dict[str, object]:
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise ConfigError(
            f"Unable to read configuration file {config_path}: {exc}", details={"path": str(config_path)}
        ) from exc
    except yaml.YAMLError as exc:
        raise ConfigError(
            f"Configuration file {config_path} is not valid YAML", details={"path": str(config_path)}
        ) from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a mapping")

    section = raw.get("accounts", {})
    if not isinstance(section, dict):
        raise ConfigError(f"The 'accounts' section of {config_path} must be a mapping")

    unknown = set(section) - set(_ENV_KEYS)
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            details={"keys": sorted(unknown)},
        )
    return dict(section)


def _as_int(name: str, value: object) -> int:
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise ConfigError(
            f"Invalid integer value {value!r} for {name}", details={"setting": name}
        ) from exc


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    config_path: Optional[Path] = None,
) -> Settings:
    """Build :class:`Settings` from an optional YAML file overlaid with environment variables."""

    env = os.environ if environ is None else environ

    if config_path is None and env.get("ACCOUNTS_CONFIG"):
        config_path = Path(env["ACCOUNTS_CONFIG"]).expanduser()

    values: Dict[str, object] = {}
    if config_path is not None:
        values.update(_load_file_values(config_path))

    for key, env_name in _ENV_KEYS.items():
        raw = env.get(env_name)
        if raw is not None and raw.strip() != "":
            values[key] = raw

    ttl_seconds = _as_int("token_ttl_seconds", values.get("token_ttl_seconds", DEFAULT_TOKEN_TTL_SECONDS))
    rounds = _as_int("bcrypt_rounds", values.get("bcrypt_rounds", DEFAULT_BCRYPT_ROUNDS))
    db_value = values.get("database_path")

    try:
        token_ttl = timedelta(seconds=ttl_seconds)
    except OverflowError as exc:
        raise ConfigError(
            f"Token lifetime {ttl_seconds} seconds is out of range",
            details={"setting": "token_ttl_seconds"},
        ) from exc

    return Settings(
        pepper=str(values.get("pepper") or ""),
        token_secret=str(values.get("token_secret") or ""),
        database_path=resolve_database_path(str(db_value) if db_value else None),
        token_ttl=token_ttl,
        token_issuer=str(values.get("token_issuer") or DEFAULT_TOKEN_ISSUER).strip(),
        bcrypt_rounds=rounds,
    )


__all__ = [
    "DEFAULT_BCRYPT_ROUNDS",
    "DEFAULT_TOKEN_ISSUER",
    "DEFAULT_TOKEN_TTL_SECONDS",
    "MAXIMUM_BCRYPT_ROUNDS",
    "MINIMUM_BCRYPT_ROUNDS",
    "Settings",
    "load_settings",
    "resolve_database_path",
]
