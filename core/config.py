"""
Runtime configuration for the Sora video client.

Values come from the process environment, optionally populated from a
.env file next to the project root.
"""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.openai.com/v1"
DEFAULT_SORA_BASE_URL = "https://sora.chatgpt.com"
DEFAULT_DATABASE_URL = "sqlite:///./sora_videos.db"
DEFAULT_REQUEST_TIMEOUT = 60.0


@dataclass
class Settings:
    """All knobs the client needs, resolved once at startup."""
    api_key: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    sora_base_url: str = DEFAULT_SORA_BASE_URL
    database_url: str = DEFAULT_DATABASE_URL
    downloads_dir: Path = Path.home() / "Downloads"
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    log_level: str = "INFO"


def _read_timeout(raw: Optional[str]) -> float:
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid SORA_REQUEST_TIMEOUT '{raw}', using {DEFAULT_REQUEST_TIMEOUT}")
        return DEFAULT_REQUEST_TIMEOUT


def load_settings(env_path: Optional[Path] = None) -> Settings:
    """
    Build Settings from the environment.

    Args:
        env_path: Optional .env file. Defaults to the project root .env,
            falling back to the current directory.

    Returns:
        Settings: The resolved configuration
    """
    if env_path is None:
        env_path = Path(__file__).parent.parent / ".env"
        if not env_path.exists():
            env_path = Path(".env").resolve()
    load_dotenv(env_path)

    downloads_dir = os.getenv("SORA_DOWNLOADS_DIR")

    return Settings(
        api_key=os.getenv("OPENAI_API_KEY"),
        api_base_url=(os.getenv("OPENAI_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/"),
        sora_base_url=(os.getenv("SORA_BASE_URL") or DEFAULT_SORA_BASE_URL).rstrip("/"),
        database_url=os.getenv("SORA_DATABASE_URL") or DEFAULT_DATABASE_URL,
        downloads_dir=Path(downloads_dir).expanduser() if downloads_dir else Path.home() / "Downloads",
        request_timeout=_read_timeout(os.getenv("SORA_REQUEST_TIMEOUT")),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
