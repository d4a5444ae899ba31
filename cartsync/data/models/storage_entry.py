# cartsync/data/models/storage_entry.py
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, String, Text

from cartsync.data.database import Base


class StorageEntryModel(Base):
    """Jeden slot lokalnego magazynu klucz-wartosc (odpowiednik localStorage)."""

    __tablename__ = "local_storage"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
