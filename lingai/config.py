"""
Runtime configuration for LingAI.

Secrets and overrides are read from a .env file at the project root:

    OPENAI_API_KEY=sk-...
    LINGAI_BASE_URL=https://api.mistral.ai/v1   # any OpenAI-compatible endpoint
    LINGAI_CHAT_MODEL=mistral-large-latest

We use python-dotenv + os.getenv so secrets stay out of git.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .logger import logger, mask_secret

DEFAULT_CHAT_MODEL = "gpt-4o-mini"
DEFAULT_TTS_MODEL = "gpt-4o-mini-tts"
# German passages read best with a deep, clear voice
DEFAULT_TTS_VOICE = "onyx"
DEFAULT_TTS_INSTRUCTIONS = (
    "Speak in clear standard German at a calm, slightly slower than natural pace, "
    "like a tutor reading a short story aloud to language learners."
)
DEFAULT_REQUEST_TIMEOUT = 60.0


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    """Everything the composition root needs to build the services."""
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    chat_model: str = DEFAULT_CHAT_MODEL
    tts_model: str = DEFAULT_TTS_MODEL
    tts_voice: str = DEFAULT_TTS_VOICE
    tts_instructions: str = DEFAULT_TTS_INSTRUCTIONS
    data_dir: str = os.path.join("~", ".lingai")
    audio_dir: Optional[str] = None
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    strict_json: bool = False
    firebase_credentials_path: Optional[str] = None

    @property
    def resolved_data_dir(self) -> str:
        return os.path.expanduser(self.data_dir)

    @property
    def resolved_audio_dir(self) -> str:
        if self.audio_dir:
            return os.path.expanduser(self.audio_dir)
        return os.path.join(self.resolved_data_dir, "audio")

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """Load .env (if any) and build settings from the environment."""
        logger.separator("LingAI Configuration")
        logger.env("Loading environment variables from .env file...")
        if load_dotenv(dotenv_path):
            logger.env_success("dotenv file loaded successfully")
        else:
            logger.warning("No .env file found or file is empty")

        api_key = os.getenv("OPENAI_API_KEY") or os.getenv("LINGAI_API_KEY")
        if api_key:
            logger.env_success(f"API key found: {mask_secret(api_key)}")
        else:
            logger.env_error("OPENAI_API_KEY not found in environment!")

        try:
            timeout = float(os.getenv("LINGAI_REQUEST_TIMEOUT", DEFAULT_REQUEST_TIMEOUT))
        except ValueError:
            logger.warning("LINGAI_REQUEST_TIMEOUT is not a number, using default")
            timeout = DEFAULT_REQUEST_TIMEOUT

        settings = cls(
            api_key=api_key,
            base_url=os.getenv("LINGAI_BASE_URL") or None,
            chat_model=os.getenv("LINGAI_CHAT_MODEL", DEFAULT_CHAT_MODEL),
            tts_model=os.getenv("LINGAI_TTS_MODEL", DEFAULT_TTS_MODEL),
            tts_voice=os.getenv("LINGAI_TTS_VOICE", DEFAULT_TTS_VOICE),
            tts_instructions=os.getenv("LINGAI_TTS_INSTRUCTIONS", DEFAULT_TTS_INSTRUCTIONS),
            data_dir=os.getenv("LINGAI_DATA_DIR", os.path.join("~", ".lingai")),
            audio_dir=os.getenv("LINGAI_AUDIO_DIR") or None,
            request_timeout=timeout,
            strict_json=_env_flag("LINGAI_STRICT_JSON", False),
            firebase_credentials_path=os.getenv("FIREBASE_CREDENTIALS_PATH") or None,
        )

        logger.env(f"Chat model: {settings.chat_model}")
        logger.env(f"TTS model: {settings.tts_model} (voice: {settings.tts_voice})")
        logger.env(f"Data directory: {settings.resolved_data_dir}")
        return settings
