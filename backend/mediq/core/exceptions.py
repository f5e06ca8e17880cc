"""
Error taxonomy for the records layer and its outbound clients.
"""
from typing import Optional


class MediqError(Exception):
    """Base class for all errors raised by this package."""


class NotFoundError(MediqError):
    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} with ID {entity_id} not found")


class SerializationError(MediqError):
    """A stored value could not be decoded. Recovered locally by the persistence layer."""

    def __init__(self, key: str, cause: Optional[Exception] = None):
        self.key = key
        self.cause = cause
        super().__init__(f"Stored value under {key!r} could not be decoded: {cause}")


class StorageQuotaError(MediqError):
    def __init__(self, key: str, size: int, quota: int):
        self.key = key
        self.size = size
        self.quota = quota
        super().__init__(
            f"Writing {key!r} would use {size} bytes, exceeding the {quota} byte storage quota"
        )


class ImportFormatError(MediqError):
    def __init__(self, message: str = "Invalid JSON format"):
        super().__init__(message)


class RemoteApiError(MediqError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class TranscriptionError(MediqError):
    pass
