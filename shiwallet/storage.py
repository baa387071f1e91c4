"""
Storage Backend Module

Persists ledger snapshots as a single opaque blob. Provides an abstract
interface plus in-memory (testing), JSON file and SQLite key/value
implementations. Monetary values inside the blob are Decimal strings.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Union
import json
import os
import sqlite3
import tempfile
from pathlib import Path

from .logging_config import get_logger

Snapshot = Dict[str, Any]

logger = get_logger("shiwallet.storage")


def _looks_like_snapshot(data: Any) -> bool:
    return isinstance(data, dict) and "wallets" in data and "transactions" in data


class SnapshotStorage(ABC):
    """Abstract interface for snapshot storage backends"""

    @abstractmethod
    def load(self) -> Optional[Snapshot]:
        """Load the stored snapshot, or None if absent or unreadable"""
        pass

    @abstractmethod
    def save(self, snapshot: Snapshot) -> None:
        """Replace the stored snapshot"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove the stored snapshot"""
        pass

    def close(self) -> None:
        """Close storage connection (default no-op)"""
        pass

    def _decode(self, raw: Optional[str]) -> Optional[Snapshot]:
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Stored snapshot is not valid JSON; ignoring it")
            return None
        if not _looks_like_snapshot(data):
            logger.warning("Stored snapshot has no wallets/transactions; ignoring it")
            return None
        return data


class InMemorySnapshotStorage(SnapshotStorage):
    """In-memory storage implementation for testing"""

    def __init__(self, initial: Optional[Snapshot] = None):
        self._raw: Optional[str] = json.dumps(initial) if initial is not None else None

    def load(self) -> Optional[Snapshot]:
        # Decoding a fresh copy prevents external mutation
        return self._decode(self._raw)

    def save(self, snapshot: Snapshot) -> None:
        self._raw = json.dumps(snapshot, default=str)

    def clear(self) -> None:
        self._raw = None

    @property
    def raw(self) -> Optional[str]:
        """Stored blob for debugging/inspection"""
        return self._raw


class JSONFileSnapshotStorage(SnapshotStorage):
    """Snapshot kept in a JSON file, replaced atomically on save"""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[Snapshot]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Failed to read snapshot file %s: %s", self.path, e)
            return None
        return self._decode(raw)

    def save(self, snapshot: Snapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=str(self.path.parent), suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(snapshot, handle, indent=2, default=str)
            os.replace(temp_path, self.path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class SQLiteSnapshotStorage(SnapshotStorage):
    """SQLite key/value table holding the snapshot under one key"""

    def __init__(self, db_path: Union[str, Path] = ":memory:", key: str = "walletData"):
        self.db_path = str(db_path)
        self.key = key
        self._connection = sqlite3.connect(self.db_path)
        self._connection.execute("""
            CREATE TABLE IF NOT EXISTS snapshots (
                key TEXT PRIMARY KEY,
                data TEXT NOT NULL
            )
        """)
        self._connection.commit()

    def load(self) -> Optional[Snapshot]:
        row = self._connection.execute(
            "SELECT data FROM snapshots WHERE key = ?", (self.key,)
        ).fetchone()
        return self._decode(row[0] if row else None)

    def save(self, snapshot: Snapshot) -> None:
        data_json = json.dumps(snapshot, default=str)
        self._connection.execute(
            "INSERT OR REPLACE INTO snapshots (key, data) VALUES (?, ?)",
            (self.key, data_json)
        )
        self._connection.commit()

    def clear(self) -> None:
        self._connection.execute("DELETE FROM snapshots WHERE key = ?", (self.key,))
        self._connection.commit()

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None


def create_storage(backend: str, path: Optional[str] = None, key: str = "walletData") -> SnapshotStorage:
    """
    Build a storage backend by name

    Args:
        backend: "json", "sqlite" or "memory"
        path: File path for json/sqlite backends
        key: Snapshot key for the sqlite backend

    Raises:
        ValueError: If the backend name is unknown
    """
    if backend == "memory":
        return InMemorySnapshotStorage()
    if backend == "json":
        return JSONFileSnapshotStorage(path or "shiwallet.json")
    if backend == "sqlite":
        return SQLiteSnapshotStorage(path or ":memory:", key=key)
    raise ValueError(f"Unknown storage backend: {backend}")
