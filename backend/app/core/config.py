from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import Any, ClassVar
import json
from pathlib import Path
import os


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra="ignore", case_sensitive=True)

    API_V1_STR: str = "/api/v1"

    # Database URL
    # Use an absolute path so running the app from different directories
    # (e.g., repo root or backend/) always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'talent_booking.db'}"

    LOG_LEVEL: str = "INFO"

    # CORS origins
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_ALL: bool = False

    # Base frontend URL used for notification action links
    FRONTEND_URL: str = "http://localhost:5173"

    # Booking codes look like BK-2025-0001
    BOOKING_CODE_PREFIX: str = "BK"

    # Contracts expire this many days after creation unless a due date is given
    CONTRACT_DUE_DAYS: int = 7

    # Extra signers spawned when a contract is sent. The talent always signs.
    REQUIRE_GUARDIAN_COSIGN: bool = True
    REQUIRE_CLIENT_COSIGN: bool = False

    # Bounded retry for transient storage conflicts (lock contention,
    # optimistic version mismatch). Exhaustion surfaces as a Conflict error.
    CONFLICT_RETRY_ATTEMPTS: int = 3
    CONFLICT_RETRY_BACKOFF_MS: int = 50

    # Periodic sweep that expires overdue contracts. 0 disables the loop;
    # expiry is still applied lazily on every read/sign path.
    CONTRACT_EXPIRY_SWEEP_SECONDS: int = 0

    # Email fanout for lifecycle notifications (in-app rows are always written)
    EMAIL_NOTIFICATIONS_ENABLED: bool = False

    # SMTP email settings
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = "no-reply@localhost"

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("FRONTEND_URL", "BOOKING_CODE_PREFIX", mode="before")
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("CONFLICT_RETRY_ATTEMPTS", "CONTRACT_DUE_DAYS", mode="after")
    def at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @model_validator(mode="after")
    def allow_all_if_requested(cls, values: "Settings") -> "Settings":
        if values.CORS_ALLOW_ALL:
            values.CORS_ORIGINS = ["*"]
        return values


def load_settings() -> "Settings":
    return Settings(_env_file=os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env")))


settings = load_settings()


def _dedupe(seq: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for item in seq:
        key = item.strip()
        if not key or key in seen:
            continue
        seen.add(key)
        ordered.append(key)
    return ordered


def _collect_frontend_origins() -> list[str]:
    origins: list[str] = list(settings.CORS_ORIGINS or [])
    base = (settings.FRONTEND_URL or "").strip()
    if base:
        origins.append(base.rstrip("/"))
    return _dedupe(origins)


FRONTEND_ORIGINS = _collect_frontend_origins()
