"""Settings for the ticket handoff core.

Configuration is read from environment variables, optionally loaded from a
``.env`` file first.

Environment Variables:
    HANDOFF_DB_PATH: SQLite database file (default: ~/.ticket-handoff/tickets.db)
    TICKET_REQUEST_TIMEOUT: Timeout for fetch/comment/test calls in seconds (default: 10)
    TICKET_UPLOAD_TIMEOUT: Timeout for attachment uploads in seconds (default: 300)
    TICKET_MAX_ATTEMPTS: Attempts per ticketing call including the first (default: 4)
    TICKET_MAX_ATTACHMENT_MB: Client-side attachment size ceiling (default: 100)
    OLLAMA_ENDPOINT: Local model server (default: http://localhost:11434)
    OLLAMA_MODEL: Local model name (default: llama3)
    OLLAMA_TIMEOUT: Local model request timeout in seconds (default: 30)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".ticket-handoff" / "tickets.db"


def _env_number(name: str, default: float, cast=float):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning(f"Invalid value in {name}: {raw!r}, using default {default}")
        return default
    if value <= 0:
        logger.warning(f"{name} must be positive, got {raw!r}, using default {default}")
        return default
    return value


@dataclass
class HandoffSettings:
    """Runtime settings, constructed once at startup and passed explicitly."""

    database_path: Path = DEFAULT_DB_PATH
    request_timeout: float = 10.0
    upload_timeout: float = 300.0
    max_attempts: int = 4
    max_attachment_mb: int = 100
    ollama_endpoint: str = "http://localhost:11434"
    ollama_model: str = "llama3"
    ollama_timeout: float = 30.0

    @property
    def max_attachment_bytes(self) -> int:
        return self.max_attachment_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "HandoffSettings":
        """Build settings from the current environment."""
        db_path = os.getenv("HANDOFF_DB_PATH")
        return cls(
            database_path=Path(db_path).expanduser() if db_path else DEFAULT_DB_PATH,
            request_timeout=_env_number("TICKET_REQUEST_TIMEOUT", 10.0),
            upload_timeout=_env_number("TICKET_UPLOAD_TIMEOUT", 300.0),
            max_attempts=_env_number("TICKET_MAX_ATTEMPTS", 4, cast=int),
            max_attachment_mb=_env_number("TICKET_MAX_ATTACHMENT_MB", 100, cast=int),
            ollama_endpoint=os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434").rstrip("/"),
            ollama_model=os.getenv("OLLAMA_MODEL", "llama3"),
            ollama_timeout=_env_number("OLLAMA_TIMEOUT", 30.0),
        )


def load_settings(env_file: Optional[Union[str, Path]] = None) -> HandoffSettings:
    """Load ``.env`` (if present) and build settings from the environment.

    Args:
        env_file: Explicit .env path; defaults to searching from the working directory

    Returns:
        HandoffSettings
    """
    if env_file is not None:
        loaded = load_dotenv(env_file, override=True)
    else:
        loaded = load_dotenv()
    if loaded:
        logger.info("Loaded environment from .env file")

    settings = HandoffSettings.from_env()
    logger.info(
        f"Settings loaded: db={settings.database_path}, "
        f"timeouts={settings.request_timeout}s/{settings.upload_timeout}s, "
        f"max_attempts={settings.max_attempts}"
    )
    return settings
