from sqlalchemy import Column, String, Text
from .base import Base, TimestampMixin


class StorageEntry(Base, TimestampMixin):
    """One key/value slot of the SQL storage backend."""
    __tablename__ = "storage_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
