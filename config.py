"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

BASE_DIR = Path(__file__).resolve().parent


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


@dataclass
class AppConfig:
    """Runtime settings for the authentication service."""

    openai_api_key: Optional[str] = None
    vision_model: str = "gpt-5"
    chat_model: str = "gpt-5-mini"
    analyze_timeout: float = 90.0
    json_timeout: float = 60.0
    chat_timeout: float = 30.0

    max_upload_mb: int = 8
    max_images: int = 3
    upload_dir: Path = BASE_DIR / "uploads"
    upload_retention_seconds: int = 86_400

    session_backend: str = "memory"
    session_ttl_seconds: int = 86_400
    sweep_interval_seconds: int = 3_600
    database_dir: Optional[str] = None

    default_location: str = "India"
    allowed_origins: List[str] = field(default_factory=lambda: ["http://localhost:5173"])
    log_level: str = "INFO"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def model_configured(self) -> bool:
        return bool(self.openai_api_key)


def load_config() -> AppConfig:
    """Build an `AppConfig` from the current environment."""
    origins_raw = os.getenv("ALLOWED_ORIGINS", "http://localhost:5173")
    origins = [origin.strip() for origin in origins_raw.split(",") if origin.strip()]

    upload_dir = Path(os.getenv("UPLOAD_DIR", str(BASE_DIR / "uploads"))).expanduser()

    backend = os.getenv("SESSION_BACKEND", "memory").strip().lower() or "memory"
    if backend not in ("memory", "sqlite"):
        raise RuntimeError(f"SESSION_BACKEND must be 'memory' or 'sqlite', got {backend!r}")

    return AppConfig(
        openai_api_key=os.getenv("OPENAI_API_KEY") or None,
        vision_model=os.getenv("OPENAI_VISION_MODEL", "gpt-5"),
        chat_model=os.getenv("OPENAI_CHAT_MODEL", "gpt-5-mini"),
        analyze_timeout=_float_env("ANALYZE_TIMEOUT_SECONDS", 90.0),
        json_timeout=_float_env("JSON_TIMEOUT_SECONDS", 60.0),
        chat_timeout=_float_env("CHAT_TIMEOUT_SECONDS", 30.0),
        max_upload_mb=_int_env("MAX_UPLOAD_SIZE_MB", 8),
        max_images=_int_env("MAX_IMAGES", 3),
        upload_dir=upload_dir,
        upload_retention_seconds=_int_env("UPLOAD_RETENTION_SECONDS", 86_400),
        session_backend=backend,
        session_ttl_seconds=_int_env("SESSION_TTL_SECONDS", 86_400),
        sweep_interval_seconds=_int_env("SWEEP_INTERVAL_SECONDS", 3_600),
        database_dir=os.getenv("DATABASE_DIR") or None,
        default_location=os.getenv("DEFAULT_LOCATION", "India"),
        allowed_origins=origins,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
