"""
Key-value blob storage for locally owned documents.

Values are opaque strings; callers own their serialization. A missing key
reads as None, never as an error. Every call is a full round-trip, so
callers that read-modify-write must not interleave writers themselves.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Optional
from sqlalchemy import Column, String, DateTime, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Blob(Base):
    __tablename__ = "blobs"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class BlobStore(ABC):
    """Async get/set/remove by key."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def remove(self, key: str) -> None:
        pass


class MemoryBlobStore(BlobStore):
    """Process-local store. Contents are lost on exit."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._blobs: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    async def set(self, key: str, value: str) -> None:
        self._blobs[key] = value

    async def remove(self, key: str) -> None:
        self._blobs.pop(key, None)


class SQLBlobStore(BlobStore):
    """
    Durable store backed by a single SQLAlchemy table.

    Defaults to a SQLite file; any SQLAlchemy URL works. Session work runs
    in a worker thread so the event loop is free while the database is busy.
    """

    def __init__(self, database_url: str = "sqlite:///./sora_videos.db"):
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, connect_args=connect_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Blob store ready ({database_url.split('@')[-1]})")

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._get, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._set, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._remove, key)

    def _get(self, key: str) -> Optional[str]:
        db = self.SessionLocal()
        try:
            blob = db.get(Blob, key)
            return blob.value if blob else None
        finally:
            db.close()

    def _set(self, key: str, value: str) -> None:
        db = self.SessionLocal()
        try:
            blob = db.get(Blob, key)
            if blob:
                blob.value = value
            else:
                db.add(Blob(key=key, value=value))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _remove(self, key: str) -> None:
        db = self.SessionLocal()
        try:
            db.query(Blob).filter(Blob.key == key).delete()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
