# OAuth2 key-value storage: one capability, swappable backends.
# Created: 2026-10-18
#
# Every record lives in a named table under a single string key. The engine
# only ever touches one key per call: get / put / delete, plus an atomic
# take (read-and-delete) used to consume authorization codes and refresh
# tokens so two concurrent redemptions cannot both succeed.

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import redis

if TYPE_CHECKING:
    from remote_mcp.config import Settings

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when a backend fails to read or write a record."""


class KeyValueStoreProtocol(Protocol):
    """Protocol for OAuth2 storage backends.

    Implement this to add a backend (DynamoDB, SQL, ...). ``expires_at`` is a
    Unix timestamp; once it has passed, get() and take() must treat the record
    as missing and the backend is free to drop it.
    """

    def get(self, table: str, key: str) -> dict[str, Any] | None:
        """Return the record or None."""
        ...

    def put(
        self, table: str, key: str, item: dict[str, Any], expires_at: int | None = None
    ) -> None:
        """Create or replace a record."""
        ...

    def delete(self, table: str, key: str) -> bool:
        """Delete a record. Returns True if it existed."""
        ...

    def take(self, table: str, key: str) -> dict[str, Any] | None:
        """Atomically read and delete a record. Only one caller gets it."""
        ...


# Local backends keep each record as {"item": ..., "expires_at": ...}.


def _entry(item: dict[str, Any], expires_at: int | None) -> dict[str, Any]:
    return {"item": dict(item), "expires_at": expires_at}


def _is_expired(entry: dict[str, Any], now: int) -> bool:
    expires_at = entry.get("expires_at")
    return expires_at is not None and expires_at < now


def _purge_expired(records: dict[str, dict[str, Any]], now: int) -> int:
    expired = [key for key, entry in records.items() if _is_expired(entry, now)]
    for key in expired:
        del records[key]
    return len(expired)


class MemoryStore:
    """In-process store. Default for development and tests.

    Expired records are dropped from a table whenever that table is written.
    """

    def __init__(self) -> None:
        self._tables: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def get(self, table: str, key: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._tables.get(table, {}).get(key)
            if entry is None or _is_expired(entry, int(time.time())):
                return None
            return dict(entry["item"])

    def put(
        self, table: str, key: str, item: dict[str, Any], expires_at: int | None = None
    ) -> None:
        with self._lock:
            records = self._tables.setdefault(table, {})
            _purge_expired(records, int(time.time()))
            records[key] = _entry(item, expires_at)

    def delete(self, table: str, key: str) -> bool:
        with self._lock:
            return self._tables.get(table, {}).pop(key, None) is not None

    def take(self, table: str, key: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._tables.get(table, {}).pop(key, None)
            if entry is None or _is_expired(entry, int(time.time())):
                return None
            return entry["item"]


class FileStore:
    """File-backed store, one JSON document per table.

    Files are chmod 0600 (owner-only read/write). A process-wide lock
    serialises read-modify-write cycles, which is what makes take() atomic.
    Every write also drops the table's expired records.
    """

    def __init__(self, directory: Path):
        self._dir = Path(directory).expanduser()
        self._lock = threading.Lock()

    def _path(self, table: str) -> Path:
        return self._dir / f"{table}.json"

    def _load(self, table: str) -> dict[str, dict[str, Any]]:
        path = self._path(table)
        if not path.exists():
            return {}
        try:
            return json.loads(path.read_text())
        except json.JSONDecodeError as exc:
            raise StorageError(f"Corrupt table file {path}") from exc
        except OSError as exc:
            raise StorageError(f"Cannot read {path}") from exc

    def _save(self, table: str, records: dict[str, dict[str, Any]]) -> None:
        path = self._path(table)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(records, indent=2))
        except OSError as exc:
            raise StorageError(f"Cannot write {path}") from exc
        try:
            path.chmod(0o600)
        except OSError:
            logger.debug("Could not restrict permissions on %s", path)

    def get(self, table: str, key: str) -> dict[str, Any] | None:
        with self._lock:
            entry = self._load(table).get(key)
            if entry is None or _is_expired(entry, int(time.time())):
                return None
            return entry["item"]

    def put(
        self, table: str, key: str, item: dict[str, Any], expires_at: int | None = None
    ) -> None:
        with self._lock:
            records = self._load(table)
            purged = _purge_expired(records, int(time.time()))
            if purged:
                logger.debug("Dropped %d expired records from %s", purged, table)
            records[key] = _entry(item, expires_at)
            self._save(table, records)

    def delete(self, table: str, key: str) -> bool:
        with self._lock:
            records = self._load(table)
            if key not in records:
                return False
            del records[key]
            self._save(table, records)
            return True

    def take(self, table: str, key: str) -> dict[str, Any] | None:
        with self._lock:
            records = self._load(table)
            entry = records.pop(key, None)
            if entry is None:
                return None
            self._save(table, records)
            if _is_expired(entry, int(time.time())):
                return None
            return entry["item"]


class RedisStore:
    """Redis-backed store.

    Keys are ``{table}:{key}``; values are JSON strings. Records with an
    ``expires_at`` get a native Redis expiry, and take() maps to GETDEL.
    """

    def __init__(self, client):
        self.redis_client = client

    @classmethod
    def from_url(cls, url: str) -> RedisStore:
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return cls(client)

    @staticmethod
    def _redis_key(table: str, key: str) -> str:
        return f"{table}:{key}"

    def get(self, table: str, key: str) -> dict[str, Any] | None:
        try:
            raw = self.redis_client.get(self._redis_key(table, key))
        except redis.RedisError as exc:
            raise StorageError(f"Failed to read from Redis: {exc}") from exc
        return json.loads(raw) if raw is not None else None

    def put(
        self, table: str, key: str, item: dict[str, Any], expires_at: int | None = None
    ) -> None:
        redis_key = self._redis_key(table, key)
        payload = json.dumps(item)
        try:
            if expires_at is not None:
                # Already-expired records still get a one-second lifetime.
                ttl = max(expires_at - int(time.time()), 1)
                self.redis_client.setex(redis_key, ttl, payload)
            else:
                self.redis_client.set(redis_key, payload)
        except redis.RedisError as exc:
            raise StorageError(f"Failed to write to Redis: {exc}") from exc

    def delete(self, table: str, key: str) -> bool:
        try:
            return bool(self.redis_client.delete(self._redis_key(table, key)))
        except redis.RedisError as exc:
            raise StorageError(f"Failed to delete from Redis: {exc}") from exc

    def take(self, table: str, key: str) -> dict[str, Any] | None:
        try:
            raw = self.redis_client.getdel(self._redis_key(table, key))
        except redis.RedisError as exc:
            raise StorageError(f"Failed to consume from Redis: {exc}") from exc
        return json.loads(raw) if raw is not None else None


def create_store(settings: Settings) -> KeyValueStoreProtocol:
    """Build the backend named by ``settings.storage_backend``."""
    backend = settings.storage_backend
    if backend == "memory":
        return MemoryStore()
    if backend == "file":
        return FileStore(settings.storage_path)
    if backend == "redis":
        return RedisStore.from_url(settings.redis_url)
    raise ValueError(f"Unknown storage backend: {backend}")
