import json
import os
import re
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field


load_dotenv()

_BCRYPT_HASH_RE = re.compile(r"^\$2[aby]\$\d{2}\$[./A-Za-z0-9]{53}$")
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class Settings(BaseModel):
    app_name: str = Field(default="Storefront Admin Backend")
    app_env: str = Field(default="development")
    debug: bool = Field(default=False)
    database_url: str = Field(default="")
    redis_url: str = Field(default="redis://localhost:6379/0")
    allowed_origins: list[str] = Field(default_factory=list)
    db_pool_size: int = Field(default=5)
    db_max_overflow: int = Field(default=10)
    db_pool_recycle: int = Field(default=1800)
    db_pool_pre_ping: bool = Field(default=True)
    admin_email: str = Field(default="")
    admin_password_hash: str = Field(default="")
    session_cookie_name: str = Field(default="admin_session")
    session_ttl_seconds: int = Field(default=60 * 60 * 24)

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = {name: field.default for name, field in cls.model_fields.items()}
        admin_email, admin_password_hash = _parse_admin_credentials()

        session_cookie_name = os.getenv(
            "SESSION_COOKIE_NAME", defaults["session_cookie_name"]
        ).strip()
        if not session_cookie_name:
            raise ValueError("SESSION_COOKIE_NAME must not be empty")

        return cls(
            app_name=os.getenv("APP_NAME", defaults["app_name"]),
            app_env=os.getenv("APP_ENV", defaults["app_env"]).strip().lower(),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            database_url=_parse_database_url(),
            redis_url=os.getenv("REDIS_URL", defaults["redis_url"]).strip(),
            allowed_origins=_parse_allowed_origins(),
            admin_email=admin_email,
            admin_password_hash=admin_password_hash,
            session_cookie_name=session_cookie_name,
            session_ttl_seconds=_env_int("SESSION_TTL_SECONDS", defaults["session_ttl_seconds"], minimum=1),
            db_pool_size=_env_int("DB_POOL_SIZE", defaults["db_pool_size"], minimum=1),
            db_max_overflow=_env_int("DB_MAX_OVERFLOW", defaults["db_max_overflow"], minimum=0),
            db_pool_recycle=_env_int("DB_POOL_RECYCLE", defaults["db_pool_recycle"], minimum=1),
            db_pool_pre_ping=_env_bool("DB_POOL_PRE_PING", defaults["db_pool_pre_ping"]),
        )


def _env_int(name: str, default: int, *, minimum: int) -> int:
    value = int(os.getenv(name, default))
    if value < minimum:
        if minimum == 0:
            raise ValueError(f"{name} must be greater than or equal to 0")
        raise ValueError(f"{name} must be greater than {minimum - 1}")
    return value


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, str(default)).strip().lower()
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean value")


def _parse_allowed_origins() -> list[str]:
    raw = os.getenv("ALLOWED_ORIGINS", "").strip()
    if not raw:
        raise ValueError("ALLOWED_ORIGINS environment variable must be set")

    # CSV or JSON array
    if raw.startswith("["):
        try:
            entries = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"ALLOWED_ORIGINS JSON is malformed: {exc}") from exc
        if not isinstance(entries, list):
            raise ValueError("ALLOWED_ORIGINS JSON must be an array")
        entries = [entry for entry in entries if isinstance(entry, str)]
    else:
        entries = raw.split(",")

    origins = [entry.strip() for entry in entries if entry.strip()]
    if not origins:
        raise ValueError("ALLOWED_ORIGINS must contain at least one origin")

    if "*" in origins:
        # Session cookies make every admin request credentialed
        raise ValueError(
            "ALLOWED_ORIGINS cannot contain '*' when credentialed requests are used"
        )

    for origin in origins:
        parsed = urlparse(origin)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("ALLOWED_ORIGINS must contain valid http/https origins with host")
    return origins


def _parse_database_url() -> str:
    database_url = os.getenv("DATABASE_URL", "").strip()
    if not database_url:
        raise ValueError("DATABASE_URL environment variable must be set")

    parsed = urlparse(database_url)
    if parsed.scheme != "postgresql+asyncpg":
        raise ValueError("DATABASE_URL must start with 'postgresql+asyncpg://'")
    if not parsed.hostname:
        raise ValueError("DATABASE_URL must include hostname")
    return database_url


def _parse_admin_credentials() -> tuple[str, str]:
    admin_email = os.getenv("ADMIN_EMAIL", "").strip()
    admin_password_hash = os.getenv("ADMIN_PASSWORD_HASH", "").strip()
    if not admin_email or not admin_password_hash:
        raise ValueError(
            "ADMIN_EMAIL and ADMIN_PASSWORD_HASH environment variables are required"
        )
    if not _BCRYPT_HASH_RE.match(admin_password_hash):
        raise ValueError("ADMIN_PASSWORD_HASH must be a bcrypt hash ($2b$...)")
    return admin_email, admin_password_hash


# Built on first access so importing the app never needs a full environment
_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Return the process-wide settings, reading the environment once.

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    global _settings_instance

    if _settings_instance is None:
        with _settings_lock:
            if _settings_instance is None:
                _settings_instance = Settings.from_env()
    return _settings_instance


class _SettingsProxy:
    """Module-level ``settings`` that resolves lazily through get_settings()."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
