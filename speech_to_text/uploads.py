"""Temporary on-disk storage for uploaded audio."""

import asyncio
import logging
import os
import tempfile
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from starlette.datastructures import UploadFile

logger = logging.getLogger(__name__)


def stored_filename(original: Optional[str], now: Optional[float] = None) -> str:
    """Name an upload as <epoch-millis>-<basename>, dropping any client path."""
    millis = int((time.time() if now is None else now) * 1000)
    name = os.path.basename((original or "").replace("\\", "/")) or "audio"
    return f"{millis}-{name}"


def _write_bytes(fd: int, content: bytes) -> None:
    with os.fdopen(fd, "wb") as f:
        f.write(content)


@asynccontextmanager
async def saved_upload(upload: UploadFile, directory: str) -> AsyncIterator[str]:
    """Write the upload to a unique temp file and remove it when the block exits."""
    content = await upload.read()
    fd, tmp_path = tempfile.mkstemp(prefix="upload-", dir=directory)
    try:
        await asyncio.to_thread(_write_bytes, fd, content)
        yield tmp_path
    finally:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        logger.debug("Removed temporary upload %s", tmp_path)
