from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_FILE = PROJECT_ROOT / ".env"
load_dotenv(ENV_FILE, override=False)


def _as_bool(value: str | None, *, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _as_int(
    value: str | None,
    *,
    default: int,
    min_value: int | None = None,
    max_value: int | None = None,
) -> int:
    if value is None or not value.strip():
        parsed = default
    else:
        try:
            parsed = int(value.strip())
        except ValueError as exc:
            raise ValueError(f"Expected integer value, got: {value!r}") from exc

    if min_value is not None and parsed < min_value:
        raise ValueError(f"Integer value {parsed} is less than allowed minimum {min_value}.")
    if max_value is not None and parsed > max_value:
        raise ValueError(f"Integer value {parsed} exceeds allowed maximum {max_value}.")
    return parsed


def _as_list(value: str | None, *, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


def _first_non_empty(*values: str | None) -> str:
    for item in values:
        if item and item.strip():
            return item.strip()
    return ""


def _build_database_url(raw_url: str, data_dir: str, database_name: str) -> str:
    url = raw_url.strip()
    if url:
        return url
    return f"sqlite:///{Path(data_dir) / database_name}"


@dataclass(frozen=True)
class Settings:
    app_name: str
    environment: str
    debug: bool
    port: int
    log_level: str

    data_dir: str
    database_name: str
    database_url: str
    base_url: str

    session_lifetime_hours: int
    session_cookie_name: str
    csrf_cookie_name: str
    csrf_exempt_paths: list[str]
    bcrypt_rounds: int

    mail_workers: int
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_pass: str
    smtp_from: str

    google_client_id: str
    google_client_secret: str

    git_sha: str

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def smtp_configured(self) -> bool:
        return all([self.smtp_host, self.smtp_port, self.smtp_user, self.smtp_pass, self.smtp_from])

    @property
    def google_enabled(self) -> bool:
        return bool(self.google_client_id)


def _validate_for_production(settings: Settings) -> None:
    if not settings.is_production:
        return

    missing: list[str] = []
    if not settings.base_url:
        missing.append("BASE_URL")
    if not settings.smtp_configured:
        missing.append("SMTP_HOST/SMTP_PORT/SMTP_USER/SMTP_PASS/SMTP_FROM")
    if settings.google_client_id and not settings.google_client_secret:
        missing.append("GOOGLE_CLIENT_SECRET")
    if missing:
        raise RuntimeError(
            "Missing required environment variables for production: " + ", ".join(missing)
        )


def load_settings(environ: dict[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ

    environment = _first_non_empty(env.get("APP_ENV"), env.get("ENV"), "development").lower()
    data_dir = (env.get("DATA_DIR") or "data").strip()
    database_name = (env.get("DATABASE_NAME") or "gighub.db").strip()
    settings = Settings(
        app_name=(env.get("APP_NAME") or "gighub").strip(),
        environment=environment,
        debug=_as_bool(env.get("DEBUG"), default=environment != "production"),
        port=_as_int(env.get("PORT"), default=3000, min_value=1, max_value=65535),
        log_level=(env.get("LOG_LEVEL") or "INFO").strip().upper(),
        data_dir=data_dir,
        database_name=database_name,
        database_url=_build_database_url(env.get("DATABASE_URL") or "", data_dir, database_name),
        base_url=(env.get("BASE_URL") or "http://localhost:3000").strip().rstrip("/"),
        session_lifetime_hours=_as_int(
            env.get("SESSION_LIFETIME_HOURS"), default=24, min_value=1, max_value=24 * 90
        ),
        session_cookie_name=(env.get("SESSION_COOKIE_NAME") or "session").strip(),
        csrf_cookie_name=(env.get("CSRF_COOKIE_NAME") or "csrf_token").strip(),
        csrf_exempt_paths=_as_list(env.get("CSRF_EXEMPT_PATHS"), default=["/admin"]),
        bcrypt_rounds=_as_int(env.get("BCRYPT_ROUNDS"), default=10, min_value=4, max_value=16),
        mail_workers=_as_int(env.get("MAIL_WORKERS"), default=2, min_value=1, max_value=32),
        smtp_host=(env.get("SMTP_HOST") or "").strip(),
        smtp_port=_as_int(env.get("SMTP_PORT"), default=587, min_value=1, max_value=65535),
        smtp_user=(env.get("SMTP_USER") or "").strip(),
        smtp_pass=(env.get("SMTP_PASS") or "").strip(),
        smtp_from=(env.get("SMTP_FROM") or "").strip(),
        google_client_id=(env.get("GOOGLE_CLIENT_ID") or "").strip(),
        google_client_secret=(env.get("GOOGLE_CLIENT_SECRET") or "").strip(),
        git_sha=(env.get("GITSHA") or "local").strip(),
    )

    _validate_for_production(settings)
    return settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
