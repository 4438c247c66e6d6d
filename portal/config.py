"""Configuration management for the telemedicine portal."""

import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


def _load_env_file() -> None:
    """Load .env from root directory if present."""
    env_path = Path(__file__).parent.parent / ".env"
    if not env_path.is_file():
        return
    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if stripped and not stripped.startswith("#") and "=" in stripped:
                key, value = stripped.split("=", 1)
                key, value = key.strip(), value.strip().strip("'\"")
                if key and value and key not in os.environ:
                    os.environ[key] = value
    except OSError:
        pass


_load_env_file()


DEFAULT_APP_NAME = "Telemedicine Portal"
DEFAULT_APP_VERSION = "1.0.0"

USER_STORAGE_KEY = "user"
TOKEN_STORAGE_KEY = "token"
NOTIFICATIONS_STORAGE_KEY = "notifications"

MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024
ALLOWED_ATTACHMENT_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)


def _env_int(name: str, fallback: int) -> int:
    try:
        return int(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


def _env_float(name: str, fallback: float) -> float:
    try:
        return float(os.getenv(name, str(fallback)))
    except (TypeError, ValueError):
        return fallback


class Settings(BaseModel):
    """Application settings with environment fallbacks."""

    # App metadata
    app_name: str = Field(default=DEFAULT_APP_NAME)
    app_version: str = Field(default=DEFAULT_APP_VERSION)

    # Local portal runtime
    server_host: str = Field(default=os.getenv("PORTAL_HOST", "127.0.0.1"))
    server_port: int = Field(default=_env_int("PORTAL_PORT", 8001))

    # Remote backend
    api_base_url: str = Field(default=os.getenv("PORTAL_API_URL", "http://localhost:5000/api"))
    socket_url: str = Field(default=os.getenv("PORTAL_SOCKET_URL", "http://localhost:5000"))
    http_timeout: float = Field(default=_env_float("PORTAL_HTTP_TIMEOUT", 30.0))

    # Durable client storage
    storage_path: str = Field(
        default=os.getenv("PORTAL_STORAGE_PATH", str(Path.home() / ".telemed_portal" / "storage.json"))
    )

    # Realtime channel
    realtime_roles: List[str] = Field(default_factory=lambda: ["patient", "pharmacy", "doctor"])
    socket_transports: List[str] = Field(default_factory=lambda: ["websocket", "polling"])

    # Chat behaviour
    typing_idle_seconds: float = Field(default=_env_float("PORTAL_TYPING_IDLE_SECONDS", 1.0))
    max_attachment_bytes: int = Field(default=MAX_ATTACHMENT_BYTES)
    allowed_attachment_types: List[str] = Field(default_factory=lambda: list(ALLOWED_ATTACHMENT_TYPES))
    voice_message_label: str = Field(default="Voice Message")

    # Microphone capture
    audio_sample_rate: int = Field(default=_env_int("PORTAL_AUDIO_SAMPLE_RATE", 16000))
    audio_channels: int = Field(default=_env_int("PORTAL_AUDIO_CHANNELS", 1))

    # Notifications
    toast_queue_size: int = Field(default=50)

    # HTTP behaviour
    cors_allow_origins_raw: str = Field(default=os.getenv("PORTAL_CORS_ALLOW_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"))
    enable_docs: bool = Field(default=os.getenv("PORTAL_ENABLE_DOCS", "1") != "0")
    docs_url: Optional[str] = Field(default=os.getenv("PORTAL_DOCS_URL", "/docs"))

    @property
    def cors_allow_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_allow_origins_raw.strip() in {"", "*"}:
            return ["*"]
        return [origin.strip() for origin in self.cors_allow_origins_raw.split(",") if origin.strip()]

    @property
    def resolved_docs_url(self) -> Optional[str]:
        """Return documentation URL when docs are enabled."""
        return (self.docs_url or "/docs") if self.enable_docs else None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
