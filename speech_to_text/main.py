"""FastAPI application exposing the upload, history and health endpoints."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.datastructures import UploadFile

from .config import Settings
from .record_store import RecordStore, RecordStoreError, build_record_store
from .transcribe_service import (
    DeepgramTranscribeService,
    TranscriptionError,
    TranscriptionProvider,
)
from .uploads import saved_upload, stored_filename

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


@router.get("/", response_class=PlainTextResponse)
async def health() -> str:
    """Liveness check."""
    return "Backend server is running"


@router.post("/upload")
async def upload_audio(request: Request):
    """Save the uploaded audio, transcribe it and store the transcript."""
    async with request.form() as form:
        audio = form.get("audio")
        # a plain text field named "audio" is not a file either
        if not isinstance(audio, UploadFile):
            return _error(400, "No audio uploaded")
        return await _transcribe_upload(request.app.state, audio)


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


async def _transcribe_upload(state, audio: UploadFile):
    audio_file = stored_filename(audio.filename)
    try:
        async with saved_upload(audio, state.settings.upload_dir) as tmp_path:
            audio_bytes = await asyncio.to_thread(_read_bytes, tmp_path)
            if not audio_bytes:
                return _error(400, "Uploaded audio file is empty")
            text = await state.provider.transcribe(audio_bytes, audio.content_type)
        await state.store.insert(audio_file, text)
    except (TranscriptionError, RecordStoreError, OSError):
        logger.exception("Transcription of %s failed", audio_file)
        return _error(500, "Transcription failed")

    logger.info("Stored transcription for %s (%d chars)", audio_file, len(text))
    return {"message": "Transcription successful", "text": text}


@router.get("/transcriptions")
async def list_transcriptions(request: Request):
    """Return every stored transcription, newest first."""
    try:
        records = await request.app.state.store.list_all()
    except RecordStoreError:
        logger.exception("Fetching history failed")
        return _error(500, "Failed to fetch history")
    return [record.to_json() for record in records]


@router.delete("/transcriptions")
async def clear_transcriptions(request: Request):
    """Delete every stored transcription."""
    try:
        deleted = await request.app.state.store.delete_all()
    except RecordStoreError:
        logger.exception("Clearing history failed")
        return _error(500, "Failed to delete history")
    logger.info("Cleared history, %d transcriptions deleted", deleted)
    return {"message": "All transcriptions deleted", "deletedCount": deleted}


def create_app(
    settings: Settings,
    provider: Optional[TranscriptionProvider] = None,
    store: Optional[RecordStore] = None,
) -> FastAPI:
    """Build the application around explicit settings and collaborators."""
    provider = provider or DeepgramTranscribeService(settings)
    store = store or build_record_store(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await store.close()

    app = FastAPI(title="speech-to-text", lifespan=lifespan)
    app.state.settings = settings
    app.state.provider = provider
    app.state.store = store
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def run() -> None:
    settings = Settings.from_env()
    _setup_logging(settings.log_level)
    # No endpoint checks credentials; sessions are only enforced by the front-end.
    logger.warning("API endpoints are unauthenticated")
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
