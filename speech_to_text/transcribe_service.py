"""This module contains the classes that talk to the speech-to-text service"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from .config import Settings

logger = logging.getLogger(__name__)


class TranscriptionError(Exception):
    """The remote service failed or returned a response without a transcript."""


def extract_transcript(payload: Any) -> str:
    """Return results.channels[0].alternatives[0].transcript from a Deepgram response."""
    try:
        transcript = payload["results"]["channels"][0]["alternatives"][0]["transcript"]
    except (KeyError, IndexError, TypeError) as e:
        raise TranscriptionError("Response does not contain a transcript") from e
    if not isinstance(transcript, str):
        raise TranscriptionError(f"Transcript has unexpected type {type(transcript).__name__}")
    return transcript


class TranscriptionProvider(ABC):
    @abstractmethod
    async def transcribe(self, audio: bytes, content_type: Optional[str] = None) -> str:
        """Convert raw audio bytes to text. Raises TranscriptionError on failure."""
        ...


class DeepgramTranscribeService(TranscriptionProvider):
    """Sends pre-recorded audio to Deepgram in a single request."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.deepgram_api_key
        self._url = settings.deepgram_url
        self._timeout = settings.transcribe_timeout
        self.options = {
            "model": settings.deepgram_model,
            "smart_format": "true" if settings.deepgram_smart_format else "false",
        }

    async def transcribe(self, audio: bytes, content_type: Optional[str] = None) -> str:
        headers = {
            "Authorization": f"Token {self._api_key}",
            "Content-Type": content_type or "application/octet-stream",
        }
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(
                    self._url, params=self.options, headers=headers, content=audio
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            raise TranscriptionError(
                f"Deepgram returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise TranscriptionError(f"Deepgram request failed: {e}") from e
        except ValueError as e:
            raise TranscriptionError("Deepgram returned a non-JSON body") from e

        transcript = extract_transcript(payload)
        logger.debug("Deepgram returned %d characters", len(transcript))
        return transcript
