"""Immutable runtime configuration, built once at startup from the environment."""

import os
import tempfile
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

DEFAULT_PORT = "5000"
DEFAULT_DEEPGRAM_URL = "https://api.deepgram.com/v1/listen"
DEFAULT_DEEPGRAM_MODEL = "nova-2"


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    deepgram_api_key: str
    mongo_uri: Optional[str] = None
    mongo_db_name: str = "speech_to_text"
    mongo_collection: str = "transcriptions"
    host: str = "0.0.0.0"
    port: int = int(DEFAULT_PORT)
    deepgram_url: str = DEFAULT_DEEPGRAM_URL
    deepgram_model: str = DEFAULT_DEEPGRAM_MODEL
    deepgram_smart_format: bool = True
    transcribe_timeout: float = 60.0
    upload_dir: str = tempfile.gettempdir()
    cors_origins: tuple[str, ...] = ("*",)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Read the process environment (after loading .env) and validate it."""
        load_dotenv()

        api_key = os.getenv("DEEPGRAM_API_KEY")
        if not api_key:
            raise ValueError("DEEPGRAM_API_KEY must be set in .env")

        raw_port = os.getenv("PORT", DEFAULT_PORT)
        try:
            port = int(raw_port)
        except ValueError:
            raise ValueError(f"PORT must be an integer, got {raw_port!r}") from None

        raw_timeout = os.getenv("TRANSCRIBE_TIMEOUT", "60")
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ValueError(f"TRANSCRIBE_TIMEOUT must be a number, got {raw_timeout!r}") from None

        raw_origins = os.getenv("CORS_ORIGINS", "*")
        origins = tuple(o.strip() for o in raw_origins.split(",") if o.strip()) or ("*",)

        upload_dir = os.getenv("UPLOAD_DIR") or tempfile.gettempdir()
        if not os.path.isdir(upload_dir):
            raise ValueError(f"UPLOAD_DIR must be an existing directory, got {upload_dir!r}")

        return cls(
            deepgram_api_key=api_key,
            mongo_uri=os.getenv("MONGO_URI") or None,
            mongo_db_name=os.getenv("MONGO_DB_NAME", "speech_to_text"),
            mongo_collection=os.getenv("MONGO_COLLECTION", "transcriptions"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=port,
            deepgram_url=os.getenv("DEEPGRAM_URL", DEFAULT_DEEPGRAM_URL),
            deepgram_model=os.getenv("DEEPGRAM_MODEL", DEFAULT_DEEPGRAM_MODEL),
            deepgram_smart_format=_truthy(os.getenv("DEEPGRAM_SMART_FORMAT", "true")),
            transcribe_timeout=timeout,
            upload_dir=upload_dir,
            cors_origins=origins,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )
