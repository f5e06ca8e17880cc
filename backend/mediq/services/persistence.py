"""
Persistence store: named JSON collections on top of a key/value substrate.

Every collection lives under one namespaced key and is read and written as a
whole. Reads fail open (corrupt data comes back as an empty collection and is
logged); writes fail loudly (substrate errors such as a full quota propagate).
"""
import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, List, Optional, Sequence, Type, Union

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..core.config import settings
from ..core.exceptions import SerializationError
from ..models.records import Record
from .storage_backend import StorageBackend

logger = logging.getLogger(__name__)


class StorageKeys:
    """Fixed slot names, all prefixed with the storage namespace."""

    def __init__(self, namespace: str = "mediq"):
        self.namespace = namespace
        self.PATIENTS = f"{namespace}_patients"
        self.CLINICAL_NOTES = f"{namespace}_clinical_notes"
        self.CALENDAR_EVENTS = f"{namespace}_calendar_events"
        self.VITALS_PREFIX = f"{namespace}_vitals"
        self.MEDICATIONS_PREFIX = f"{namespace}_medications"
        self.METADATA = f"{namespace}_metadata"
        self.PATIENT_SEQUENCE = f"{namespace}_patient_sequence"

    @property
    def fixed(self) -> List[str]:
        return [
            self.PATIENTS,
            self.CLINICAL_NOTES,
            self.CALENDAR_EVENTS,
            self.METADATA,
            self.PATIENT_SEQUENCE,
        ]

    def vitals(self, patient_id: str) -> str:
        return f"{self.VITALS_PREFIX}_{patient_id}"

    def medications(self, patient_id: str) -> str:
        return f"{self.MEDICATIONS_PREFIX}_{patient_id}"


@dataclass
class CollectionRead:
    """A collection read. ``recovered`` is set when unreadable data was replaced by ``[]``."""
    items: List[Any] = field(default_factory=list)
    recovered: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.items


@lru_cache(maxsize=None)
def _list_adapter(model: Type[BaseModel]) -> TypeAdapter:
    return TypeAdapter(List[model])


def _encode(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _to_plain(item: Union[Record, dict]) -> dict:
    return item.to_storage() if isinstance(item, Record) else item


class PersistenceStore:
    def __init__(self, backend: StorageBackend, namespace: Optional[str] = None):
        self.backend = backend
        self.keys = StorageKeys(namespace or settings.STORAGE_NAMESPACE)

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def read(self, key: str, model: Type[BaseModel]) -> List[Any]:
        return self.read_result(key, model).items

    def read_result(self, key: str, model: Type[BaseModel]) -> CollectionRead:
        raw = self.backend.get_item(key)
        if raw is None:
            return CollectionRead()
        try:
            return CollectionRead(items=self._decode(key, raw, model))
        except SerializationError as exc:
            logger.error("Error reading %s from storage, using empty collection: %s", key, exc.cause)
            return CollectionRead(recovered=True)

    def write(self, key: str, items: Sequence[Union[Record, dict]]) -> None:
        self.backend.set_item(key, _encode([_to_plain(i) for i in items]))

    def remove(self, key: str) -> None:
        self.backend.remove_item(key)

    def exists(self, key: str) -> bool:
        return self.backend.get_item(key) is not None

    # ------------------------------------------------------------------
    # Single values (metadata, counters)
    # ------------------------------------------------------------------

    def read_object(self, key: str, model: Type[BaseModel]) -> Optional[BaseModel]:
        raw = self.backend.get_item(key)
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as exc:
            logger.error("Error reading %s from storage: %s", key, exc)
            return None

    def write_object(self, key: str, obj: Union[Record, dict]) -> None:
        self.backend.set_item(key, _encode(_to_plain(obj)))

    def read_value(self, key: str, default: Any = None) -> Any:
        raw = self.backend.get_item(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as exc:
            logger.error("Error reading %s from storage: %s", key, exc)
            return default

    def write_value(self, key: str, value: Any) -> None:
        self.backend.set_item(key, _encode(value))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(key: str, raw: str, model: Type[BaseModel]) -> List[Any]:
        try:
            return _list_adapter(model).validate_python(json.loads(raw))
        except (ValueError, ValidationError) as exc:
            raise SerializationError(key, exc) from exc
