"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

# Project root (src/chatstream/config.py -> project root)
PROJECT_ROOT = Path(__file__).parent.parent.parent

_default_db_path = PROJECT_ROOT / "data" / "chatstream.db"


def _env_number(name: str, default, cast):
    """Read a numeric env var; a malformed value names the variable."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    """Values handed to the conversation components at construction."""

    database_url: str = f"sqlite+aiosqlite:///{_default_db_path}"
    storage_path: Path = Path("./uploads")
    history_window: int = 10
    stream_timeout_seconds: float = 300.0  # 5 minutes
    heartbeat_interval_seconds: float = 15.0
    default_model: str = "claude-sonnet-4-20250514"
    default_title: str = "New chat"
    max_tokens: int = 4096
    max_upload_bytes: int = 10 * 1024 * 1024  # per attachment
    system_prompt_template: str = "You act in the role of {role}"
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            storage_path=Path(os.getenv("FILE_STORAGE_PATH", str(defaults.storage_path))),
            history_window=_env_number("HISTORY_WINDOW", defaults.history_window, int),
            stream_timeout_seconds=_env_number(
                "STREAM_TIMEOUT_SECONDS", defaults.stream_timeout_seconds, float
            ),
            heartbeat_interval_seconds=_env_number(
                "HEARTBEAT_INTERVAL_SECONDS", defaults.heartbeat_interval_seconds, float
            ),
            default_model=os.getenv("DEFAULT_MODEL", defaults.default_model),
            max_tokens=_env_number("MODEL_MAX_TOKENS", defaults.max_tokens, int),
            max_upload_bytes=_env_number("MAX_UPLOAD_BYTES", defaults.max_upload_bytes, int),
            system_prompt_template=os.getenv(
                "SYSTEM_PROMPT_TEMPLATE", defaults.system_prompt_template
            ),
            cors_origins=(
                tuple(o.strip() for o in origins.split(",") if o.strip())
                if origins
                else defaults.cors_origins
            ),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )


@lru_cache
def get_settings() -> Settings:
    """Settings for the running process (cached after the first call)."""
    return Settings.from_env()
