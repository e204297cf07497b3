"""
Simple configuration management.

The ``Settings`` dataclass reads configuration directly from
environment variables.  Defaults are provided for all fields so the
application starts without any configuration, but Zoom credentials
must be supplied for meetings to be created.  In a production
deployment override these via environment variables or a ``.env``
file loaded by your process manager.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    project_name: str = os.getenv("PROJECT_NAME", "Zoom Event Platform API")
    api_version: str = os.getenv("API_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_file: str = os.getenv("LOG_FILE", "")
    secret_key: str = os.getenv("SECRET_KEY", "change_me")
    access_token_expire_minutes: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))
    algorithm: str = os.getenv("ALGORITHM", "HS256")

    # Comma‑separated list of origins allowed by CORS.  Empty disables
    # the middleware entirely.
    cors_origins: str = os.getenv("CORS_ORIGINS", "http://localhost:3000")

    # Path or connection string for the SQLite database.  A relative
    # path is resolved relative to the project root by ``core.db``.
    database_url: str = os.getenv("DATABASE_URL", "zoom_event_platform.db")

    # Zoom Server‑to‑Server OAuth application credentials.
    zoom_account_id: str = os.getenv("ZOOM_ACCOUNT_ID", "")
    zoom_client_id: str = os.getenv("ZOOM_CLIENT_ID", "")
    zoom_client_secret: str = os.getenv("ZOOM_CLIENT_SECRET", "")
    zoom_api_base_url: str = os.getenv("ZOOM_API_BASE_URL", "https://api.zoom.us/v2")
    zoom_oauth_url: str = os.getenv("ZOOM_OAUTH_URL", "https://zoom.us/oauth/token")
    zoom_timeout_seconds: float = float(os.getenv("ZOOM_TIMEOUT_SECONDS", "30"))

    # Secret token configured for the Zoom webhook subscription.
    zoom_webhook_secret: str = os.getenv("ZOOM_WEBHOOK_SECRET", "")

    # Meeting SDK credentials used to sign join tokens for the web client.
    zoom_sdk_key: str = os.getenv("ZOOM_SDK_KEY", "")
    zoom_sdk_secret: str = os.getenv("ZOOM_SDK_SECRET", "")


# Instantiate settings once so other modules can import it without
# repeatedly reading environment variables.  Environment variables
# must be set before importing this module.
settings = Settings()
