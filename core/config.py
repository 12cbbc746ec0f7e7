"""
Configuration

Settings are read from the environment; a .env file next to the project
root is loaded first so local development does not need exported
variables.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-5-chat-latest"
DEFAULT_REFEREE_TIMEOUT_SECONDS = 20.0
DEFAULT_CHAT_HISTORY_LIMIT = 10
DEFAULT_TOKEN_FILE = "token.json"

_TRUE_VALUES = {"1", "true", "yes", "on"}

_current_transport_mode = "stdio"


def load_environment(dotenv_path: Optional[str] = None) -> None:
    """Load .env into the process environment without overriding existing values."""
    if dotenv_path is None:
        dotenv_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), ".env")
    load_dotenv(dotenv_path=dotenv_path)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={value!r}, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    """Process-wide settings built once at startup."""
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    default_model: str = DEFAULT_MODEL
    referee_model: Optional[str] = None
    referee_timeout_seconds: float = DEFAULT_REFEREE_TIMEOUT_SECONDS
    enable_referee: bool = False
    chat_history_limit: int = DEFAULT_CHAT_HISTORY_LIMIT
    google_token_file: str = DEFAULT_TOKEN_FILE
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            default_model=os.getenv("DEFAULT_MODEL") or DEFAULT_MODEL,
            referee_model=os.getenv("REFEREE_MODEL") or None,
            referee_timeout_seconds=_env_float("REFEREE_TIMEOUT_SECONDS", DEFAULT_REFEREE_TIMEOUT_SECONDS),
            enable_referee=_env_bool("ENABLE_REFEREE", False),
            chat_history_limit=_env_int("CHAT_HISTORY_LIMIT", DEFAULT_CHAT_HISTORY_LIMIT),
            google_token_file=os.getenv("GOOGLE_TOKEN_FILE") or DEFAULT_TOKEN_FILE,
            log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def referee_enabled(self) -> bool:
        return self.enable_referee and bool(self.referee_model)


def get_transport_mode() -> str:
    return _current_transport_mode


def set_transport_mode(mode: str) -> None:
    global _current_transport_mode
    _current_transport_mode = mode
