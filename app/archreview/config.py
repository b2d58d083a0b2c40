import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str

    # Approving a review also activates it (SUBMITTED -> APPROVED -> CURRENT in one step).
    auto_activate_on_approve: bool


def _getenv(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name, "1" if default else "0").lower()
    return raw in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    return Settings(
        secret_key=_getenv("SECRET_KEY", "change-me"),
        env=_getenv("ENV", "development"),
        database_url=_getenv("DATABASE_URL", "sqlite:///archreview.db"),
        auto_activate_on_approve=_getenv_bool("AUTO_ACTIVATE_ON_APPROVE", False),
    )


def load_config() -> dict:
    s = load_settings()
    is_production = s.env in ("prod", "production")
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "AUTO_ACTIVATE_ON_APPROVE": s.auto_activate_on_approve,
        # security defaults
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,  # Require HTTPS in production
        # solution review payloads are JSON only (2MB)
        "MAX_CONTENT_LENGTH": 2 * 1024 * 1024,
    }
