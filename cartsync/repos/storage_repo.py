# cartsync/repos/storage_repo.py
from typing import Optional, Protocol

import redis
from sqlalchemy.orm import Session

from cartsync.data.database import SessionLocal, init_db
from cartsync.data.models.storage_entry import StorageEntryModel
from cartsync.utils.logging import get_logger
from cartsync.utils.retry import redis_retry
from cartsync.utils.settings import LOCAL_STORE_BACKEND, REDIS_URL

logger = get_logger(__name__)


class KeyValueStorage(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class SqlStorage:
    """Magazyn klucz-wartosc w tabeli `local_storage`, kazdy zapis to osobny commit."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        entry = self.db.get(StorageEntryModel, key)
        return entry.value if entry else None

    def set(self, key: str, value: str) -> None:
        entry = self.db.get(StorageEntryModel, key)
        if entry:
            entry.value = value
        else:
            self.db.add(StorageEntryModel(key=key, value=value))
        self.db.commit()

    def delete(self, key: str) -> None:
        entry = self.db.get(StorageEntryModel, key)
        if entry:
            self.db.delete(entry)
            self.db.commit()


class RedisStorage:
    def __init__(self, url: str | None = None, namespace: str = "cartsync", client=None):
        self.redis = client or redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )
        self.namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    @redis_retry()
    def get(self, key: str) -> Optional[str]:
        return self.redis.get(self._key(key))

    @redis_retry()
    def set(self, key: str, value: str) -> None:
        self.redis.set(self._key(key), value)

    @redis_retry()
    def delete(self, key: str) -> None:
        self.redis.delete(self._key(key))


def build_storage(backend: str | None = None) -> KeyValueStorage:
    backend = (backend or LOCAL_STORE_BACKEND).lower()
    logger.info(f"Local storage backend: {backend}")

    if backend == "redis":
        return RedisStorage()
    if backend == "sql":
        init_db()
        return SqlStorage(SessionLocal())
    raise ValueError(f"Unknown local storage backend: {backend}")
