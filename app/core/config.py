from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

# .env lives at the project root: app/core/config.py -> app/core -> app -> root
_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _ROOT / ".env"


class Settings(BaseSettings):
    secret_key: str = "change-me-in-production"
    database_url: str = "sqlite:///./shop.db"
    environment: str = "development"
    log_level: str = "INFO"
    # Comma separated origins; "*" allows all
    cors_origins: str = "*"
    # Per-IP request budget for public endpoints
    rate_limit_per_minute: int = 60
    # Order placement has its own, tighter budget
    rate_limit_orders_per_minute: int = 10
    # Admin API shared secret (X-Admin-Secret). Empty = admin API disabled.
    admin_secret: str = ""
    # Seconds a settings snapshot is served from memory before re-reading the DB
    settings_cache_ttl: int = 60
    # Uploads
    upload_max_mb: int = 5
    upload_dir: str = str(_ROOT / "public" / "uploads")
    # BDCourier fraud check
    bdcourier_api_key: str = ""
    bdcourier_base_url: str = "https://api.bdcourier.com"
    # S3-compatible object store (MinIO)
    minio_endpoint: str = ""
    minio_port: int = 9000
    minio_use_ssl: bool = False
    minio_access_key: str = ""
    minio_secret_key: str = ""
    minio_bucket: str = "uploads"
    # ImageKit image CDN
    imagekit_private_key: str = ""
    imagekit_url_endpoint: str = ""
    imagekit_upload_folder: str = ""
    imagekit_upload_quality: str = "80"
    # Meta Conversions API fallback when the admin settings are empty
    meta_pixel_id: str = ""
    meta_capi_access_token: str = ""
    # Public site URL, used as event_source_url for server events
    app_url: str = "http://localhost:3000"

    model_config = {
        "env_file": _ENV_FILE if _ENV_FILE.is_file() else ".env",
        "extra": "ignore",
    }

    @field_validator(
        "admin_secret",
        "bdcourier_api_key",
        "minio_access_key",
        "minio_secret_key",
        "imagekit_private_key",
        "meta_capi_access_token",
        mode="before",
    )
    @classmethod
    def strip_secret(cls, v: str | None) -> str:
        """Copy/paste whitespace around keys breaks auth headers."""
        return (v or "").strip()

    @field_validator("minio_endpoint", "imagekit_url_endpoint", mode="before")
    @classmethod
    def strip_endpoint(cls, v: str | None) -> str:
        return (v or "").strip()


settings = Settings()


def is_courier_configured() -> bool:
    return bool((settings.bdcourier_api_key or "").strip())
