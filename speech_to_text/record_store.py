"""Persistence of transcription records.

Records are created once and never updated; the only operations are insert,
list-all (newest first) and delete-all.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pymongo import AsyncMongoClient, DESCENDING
from pymongo.errors import PyMongoError

from .config import Settings

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RecordStoreError(Exception):
    """The underlying document store rejected or failed an operation."""


class TranscriptionRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(alias="_id")
    audio_file: str = Field(alias="audioFile")
    text: str
    created_at: datetime = Field(alias="createdAt")

    def to_json(self) -> dict:
        """Serialize with the stored field names and an ISO-8601 createdAt."""
        return self.model_dump(by_alias=True, mode="json")


class RecordStore(ABC):
    @abstractmethod
    async def insert(self, audio_file: str, text: str) -> TranscriptionRecord:
        ...

    @abstractmethod
    async def list_all(self) -> list[TranscriptionRecord]:
        """Every record, most recent createdAt first."""
        ...

    @abstractmethod
    async def delete_all(self) -> int:
        """Remove every record and return how many were removed."""
        ...

    async def close(self) -> None:
        pass


class MongoRecordStore(RecordStore):
    """Records kept in a MongoDB collection."""

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utcnow) -> None:
        self.client = AsyncMongoClient(settings.mongo_uri, tz_aware=True)
        self.collection = self.client[settings.mongo_db_name][settings.mongo_collection]
        self._clock = clock

    async def insert(self, audio_file: str, text: str) -> TranscriptionRecord:
        doc = {"audioFile": audio_file, "text": text, "createdAt": self._clock()}
        try:
            result = await self.collection.insert_one(doc)
        except PyMongoError as e:
            raise RecordStoreError(f"insert failed: {e}") from e
        return TranscriptionRecord(
            _id=str(result.inserted_id),
            audioFile=audio_file,
            text=text,
            createdAt=doc["createdAt"],
        )

    async def list_all(self) -> list[TranscriptionRecord]:
        try:
            cursor = self.collection.find().sort([("createdAt", DESCENDING), ("_id", DESCENDING)])
            docs = await cursor.to_list(None)
        except PyMongoError as e:
            raise RecordStoreError(f"find failed: {e}") from e
        return [
            TranscriptionRecord(
                _id=str(doc["_id"]),
                audioFile=doc["audioFile"],
                text=doc["text"],
                createdAt=doc["createdAt"],
            )
            for doc in docs
        ]

    async def delete_all(self) -> int:
        try:
            result = await self.collection.delete_many({})
        except PyMongoError as e:
            raise RecordStoreError(f"delete failed: {e}") from e
        return result.deleted_count

    async def close(self) -> None:
        await self.client.close()


class InMemoryRecordStore(RecordStore):
    """Process-local store, used when no MongoDB is configured."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._lock = asyncio.Lock()
        self._records: list[tuple[int, TranscriptionRecord]] = []
        self._seq = 0

    async def insert(self, audio_file: str, text: str) -> TranscriptionRecord:
        async with self._lock:
            record = TranscriptionRecord(
                _id=str(ObjectId()),
                audioFile=audio_file,
                text=text,
                createdAt=self._clock(),
            )
            self._seq += 1
            self._records.append((self._seq, record))
        return record

    async def list_all(self) -> list[TranscriptionRecord]:
        async with self._lock:
            # later insertions win ties on createdAt
            ordered = sorted(
                self._records, key=lambda item: (item[1].created_at, item[0]), reverse=True
            )
        return [record for _, record in ordered]

    async def delete_all(self) -> int:
        async with self._lock:
            count = len(self._records)
            self._records.clear()
        return count


def build_record_store(settings: Settings) -> RecordStore:
    if settings.mongo_uri:
        logger.info(
            "Using MongoDB collection %s.%s", settings.mongo_db_name, settings.mongo_collection
        )
        return MongoRecordStore(settings)
    logger.warning("MONGO_URI is not set, transcriptions are kept in memory only")
    return InMemoryRecordStore()
