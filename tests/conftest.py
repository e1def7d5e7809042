import sys
import os

# Ensure the project root is in sys.path so `from speech_to_text.main import create_app`
# works without installing the package
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

import pytest

from speech_to_text.config import Settings
from speech_to_text.record_store import InMemoryRecordStore
from speech_to_text.transcribe_service import TranscriptionError, TranscriptionProvider


class FakeProvider(TranscriptionProvider):
    """Returns a canned transcript and remembers what it was sent."""

    def __init__(self, transcript: str = "hello world", error: Exception | None = None) -> None:
        self.transcript = transcript
        self.error = error
        self.calls: list[tuple[bytes, str | None]] = []

    async def transcribe(self, audio: bytes, content_type: str | None = None) -> str:
        self.calls.append((audio, content_type))
        if self.error is not None:
            raise self.error
        return self.transcript


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "uploads"
    path.mkdir()
    return path


@pytest.fixture
def settings(upload_dir):
    return Settings(deepgram_api_key="test-key", upload_dir=str(upload_dir))


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def failing_provider():
    return FakeProvider(error=TranscriptionError("Deepgram returned HTTP 502"))


@pytest.fixture
def store():
    return InMemoryRecordStore()
