"""
Environment-driven settings.

`load_settings()` reads the process environment (after `.env` has been loaded
by the app factory) into an immutable `Settings`; `load_config()` turns that
into the flat mapping Flask expects.
"""
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

DEFAULT_SECRET_KEY = "change-me"
PRODUCTION_ENVS = ("prod", "production")


def _env(name: str, default: str = "") -> str:
    return (os.environ.get(name) or default).strip()


def _env_decimal(name: str, default: str) -> Decimal:
    raw = _env(name, default)
    try:
        return Decimal(raw)
    except InvalidOperation as e:
        raise RuntimeError(f"{name} must be a number, got {raw!r}.") from e


@dataclass(frozen=True)
class StorageSettings:
    backend: str
    root: str
    receipts_bucket: str
    logos_bucket: str
    public_base_url: str
    s3_endpoint: str
    s3_region: str
    s3_access_key_id: str
    s3_secret_access_key: str

    def missing_s3_credentials(self) -> list[str]:
        if self.backend != "s3":
            return []
        pairs = (("S3_ACCESS_KEY_ID", self.s3_access_key_id), ("S3_SECRET_ACCESS_KEY", self.s3_secret_access_key))
        return [name for name, value in pairs if not value]


@dataclass(frozen=True)
class Settings:
    secret_key: str
    env: str
    database_url: str
    app_timezone: str
    default_mileage_rate: Decimal
    storage: StorageSettings

    @property
    def is_production(self) -> bool:
        return self.env.lower() in PRODUCTION_ENVS

    def production_problems(self) -> list[str]:
        """Reasons this configuration must not serve production traffic."""
        if not self.is_production:
            return []
        problems = []
        if not self.database_url:
            problems.append("DATABASE_URL is required in production.")
        elif self.database_url.startswith("sqlite"):
            problems.append("DATABASE_URL must be Postgres in production (not sqlite).")
        if self.secret_key in ("", DEFAULT_SECRET_KEY):
            problems.append("SECRET_KEY must be set to a strong value in production (not default).")
        return problems


def load_settings() -> Settings:
    return Settings(
        secret_key=_env("SECRET_KEY", DEFAULT_SECRET_KEY),
        env=_env("ENV", "development"),
        database_url=_env("DATABASE_URL", "sqlite:///ledgerly.db"),
        app_timezone=_env("APP_TIMEZONE", "UTC"),
        default_mileage_rate=_env_decimal("DEFAULT_MILEAGE_RATE", "0.67"),
        storage=StorageSettings(
            backend=_env("STORAGE_BACKEND", "local").lower(),
            root=_env("STORAGE_ROOT"),
            receipts_bucket=_env("RECEIPTS_BUCKET", "receipts"),
            logos_bucket=_env("LOGOS_BUCKET", "logos"),
            public_base_url=_env("PUBLIC_STORAGE_BASE_URL"),
            s3_endpoint=_env("S3_ENDPOINT"),
            s3_region=_env("S3_REGION", "us-east-1"),
            s3_access_key_id=_env("S3_ACCESS_KEY_ID"),
            s3_secret_access_key=_env("S3_SECRET_ACCESS_KEY"),
        ),
    )


def load_config(settings: Settings | None = None) -> dict:
    s = settings or load_settings()
    st = s.storage
    return {
        "SECRET_KEY": s.secret_key,
        "ENV": s.env,
        "DATABASE_URL": s.database_url,
        "APP_TIMEZONE": s.app_timezone,
        "DEFAULT_MILEAGE_RATE": s.default_mileage_rate,
        "STORAGE_BACKEND": st.backend,
        "STORAGE_ROOT": st.root,
        "RECEIPTS_BUCKET": st.receipts_bucket,
        "LOGOS_BUCKET": st.logos_bucket,
        "PUBLIC_STORAGE_BASE_URL": st.public_base_url,
        "S3_ENDPOINT": st.s3_endpoint,
        "S3_REGION": st.s3_region,
        "S3_ACCESS_KEY_ID": st.s3_access_key_id,
        "S3_SECRET_ACCESS_KEY": st.s3_secret_access_key,
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": s.is_production,
        # Receipts and logos are the only uploads.
        "MAX_CONTENT_LENGTH": 10 * 1024 * 1024,
    }
