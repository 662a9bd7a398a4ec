"""
Client configuration using pydantic-settings.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.tuteliq.ai"
DEFAULT_VOICE_STREAM_URL = "wss://api.tuteliq.ai/voice/stream"


def find_env_file() -> str:
    """Find .env file by checking the working directory, then the project root."""
    candidates = [
        Path.cwd() / ".env",
        Path(__file__).parent.parent / ".env",
    ]

    for candidate in candidates:
        if candidate.exists():
            return str(candidate)

    return str(Path.cwd() / ".env")


class Settings(BaseSettings):
    """Client settings loaded from TUTELIQ_* environment variables."""

    model_config = SettingsConfigDict(
        env_file=find_env_file(),
        env_file_encoding="utf-8",
        env_prefix="TUTELIQ_",
        case_sensitive=False,
        extra="ignore",
    )

    # Authentication
    API_KEY: str = ""

    # Endpoints
    BASE_URL: str = DEFAULT_BASE_URL
    VOICE_STREAM_URL: str = DEFAULT_VOICE_STREAM_URL

    # HTTP
    TIMEOUT: float = 30.0  # seconds

    # Retry
    RETRIES: int = 3
    RETRY_DELAY: float = 1.0  # seconds, first backoff step
    MAX_RETRY_DELAY: float = 30.0  # seconds

    # Logging (applied by applications and demos, never by the library)
    LOG_LEVEL: str = "INFO"


settings = Settings()
