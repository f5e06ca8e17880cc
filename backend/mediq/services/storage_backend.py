"""
Synchronous string key/value substrate underneath the persistence store.

Mirrors the browser local-storage contract the dashboard was written against:
get/set/remove of whole string values, with a size quota that makes writes
fail loudly once the store is full.
"""
import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import sessionmaker

from ..core.config import settings
from ..core.exceptions import StorageQuotaError
from ..models.storage_entry import StorageEntry

logger = logging.getLogger(__name__)


def _entry_size(key: str, value: str) -> int:
    # Characters, like the browser quota.
    return len(key) + len(value)


class StorageBackend:
    """Interface shared by the in-memory and SQL substrates."""

    def __init__(self, quota: Optional[int] = None):
        self.quota = settings.STORAGE_QUOTA_BYTES if quota is None else quota

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError

    def keys(self) -> List[str]:
        raise NotImplementedError

    def usage(self) -> int:
        raise NotImplementedError

    def _check_quota(self, key: str, value: str, current_value: Optional[str], usage: int) -> None:
        released = _entry_size(key, current_value) if current_value is not None else 0
        projected = usage - released + _entry_size(key, value)
        if self.quota and projected > self.quota:
            raise StorageQuotaError(key, projected, self.quota)


class InMemoryStorage(StorageBackend):
    """Process-local dict store. One instance per browser-tab equivalent."""

    def __init__(self, quota: Optional[int] = None):
        super().__init__(quota)
        self._data: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._check_quota(key, value, self._data.get(key), self.usage())
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)

    def usage(self) -> int:
        return sum(_entry_size(k, v) for k, v in self._data.items())


class SQLStorage(StorageBackend):
    """Key/value slots kept in the ``storage_entries`` table."""

    def __init__(self, session_factory: sessionmaker, quota: Optional[int] = None):
        super().__init__(quota)
        self.session_factory = session_factory

    def get_item(self, key: str) -> Optional[str]:
        db = self.session_factory()
        try:
            entry = db.get(StorageEntry, key)
            return entry.value if entry else None
        finally:
            db.close()

    def set_item(self, key: str, value: str) -> None:
        db = self.session_factory()
        try:
            entry = db.get(StorageEntry, key)
            self._check_quota(key, value, entry.value if entry else None, self._usage(db))
            if entry:
                entry.value = value
            else:
                db.add(StorageEntry(key=key, value=value))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def remove_item(self, key: str) -> None:
        db = self.session_factory()
        try:
            db.query(StorageEntry).filter(StorageEntry.key == key).delete()
            db.commit()
        finally:
            db.close()

    def keys(self) -> List[str]:
        db = self.session_factory()
        try:
            return [row.key for row in db.query(StorageEntry.key).order_by(StorageEntry.key).all()]
        finally:
            db.close()

    def usage(self) -> int:
        db = self.session_factory()
        try:
            return self._usage(db)
        finally:
            db.close()

    @staticmethod
    def _usage(db) -> int:
        total = db.query(
            func.sum(func.length(StorageEntry.key) + func.length(StorageEntry.value))
        ).scalar()
        return int(total or 0)


def create_storage_backend(backend: Optional[str] = None) -> StorageBackend:
    """Build the substrate selected by ``STORAGE_BACKEND``."""
    backend = backend or settings.STORAGE_BACKEND
    if backend == "sql":
        from ..models.base import Base, SessionLocal, engine

        Base.metadata.create_all(bind=engine)
        logger.info("Using SQL storage backend (%s)", settings.DATABASE_URL)
        return SQLStorage(SessionLocal)
    if backend != "memory":
        raise ValueError(f"Unknown storage backend: {backend}")
    logger.info("Using in-memory storage backend")
    return InMemoryStorage()
