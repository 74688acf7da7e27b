from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    # All environment reads go through here; values are stripped.
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("", "0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    # Issuer key material stays as raw hex here; badge_service.crypto.keys
    # parses and validates it so a bad key fails exactly once, on first use.
    badge_issuer_private_key: str | None
    badge_issuer_public_key: str | None
    badge_domains: tuple[str, ...]

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"

    def __repr__(self) -> str:
        # Never render the private key, even in debug output.
        return (
            f"Settings(app_env={self.app_env!r}, log_level={self.log_level!r}, "
            f"log_json={self.log_json!r}, "
            f"badge_issuer_private_key={'<set>' if self.badge_issuer_private_key else None}, "
            f"badge_issuer_public_key={self.badge_issuer_public_key!r}, "
            f"badge_domains={self.badge_domains!r})"
        )


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    log_json_raw = _getenv("LOG_JSON", "false")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    log_json = _parse_bool("LOG_JSON", log_json_raw)

    private_key = _getenv("BADGE_ISSUER_PRIVATE_KEY", "") or None
    public_key = _getenv("BADGE_ISSUER_PUBLIC_KEY", "") or None

    domains = tuple(
        d.strip() for d in _getenv("BADGE_DOMAINS", "").split(",") if d.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        badge_issuer_private_key=private_key,
        badge_issuer_public_key=public_key,
        badge_domains=domains,
    )


# Loaded once at import; key material itself is parsed lazily in crypto.keys.
SETTINGS = load_settings()
