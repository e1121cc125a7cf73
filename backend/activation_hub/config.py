# activation_hub/config.py
import os
from pydantic import BaseModel
from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if not raw:
        return default
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseModel):
    # General app settings
    APP_NAME: str = os.getenv("APP_NAME", "Activation Hub API")
    env: str = os.getenv("ENV", "dev")

    # Host & Port settings
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "8000"))

    # CORS origins (admin panel, desktop client, local dev)
    CORS_ORIGINS: list[str] = _env_list("ALLOWED_ORIGINS", [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://localhost:1420",
        "tauri://localhost",
    ])

    # API key gating for admin routes (alternative to an admin JWT)
    enable_api_key_auth: bool = _env_bool("ENABLE_API_KEY_AUTH", "false")
    api_key: str | None = os.getenv("API_KEY")

    # Rate limiting of public verification routes
    enable_rate_limiting: bool = _env_bool("ENABLE_RATE_LIMITING", "false")
    rate_limit_backend: str = os.getenv("RATE_LIMIT_BACKEND", "memory")  # memory | database
    rate_limit_max_requests: int = int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "100"))
    rate_limit_window_seconds: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))

    # Activation code lifecycle
    default_expiration_days: int = int(os.getenv("DEFAULT_EXPIRATION_DAYS", "365"))
    cleanup_unused_minutes: int = int(os.getenv("CLEANUP_UNUSED_MINUTES", "5"))
    enable_opportunistic_cleanup: bool = _env_bool("ENABLE_OPPORTUNISTIC_CLEANUP", "true")

    # Degrade to an in-process store when the database is unreachable
    enable_fallback_store: bool = _env_bool("ENABLE_FALLBACK_STORE", "false")


settings = Settings()  # Instantiate configuration
