"""
Fingerprint Store
=================
Bounded history of fingerprints from accepted images.

The verifier only needs "read everything" and "append, keeping the newest N",
so storage is hidden behind ``FingerprintRepository``:

- InMemoryFingerprintRepository: process-local list (tests, single worker)
- JsonFileFingerprintRepository: JSON array on disk, replaced atomically
- SqlFingerprintRepository: one row per fingerprint in any SQLAlchemy database
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .config import EngineSettings, settings
from .errors import StoreIOError

logger = logging.getLogger(__name__)

DEFAULT_STORE_LIMIT = 1000


class FingerprintRepository(ABC):
    """Read-all / append-bounded storage for accepted fingerprints."""

    def __init__(self, limit: int = DEFAULT_STORE_LIMIT):
        if limit < 1:
            raise ValueError("Store limit must be at least 1")
        self.limit = limit
        self._lock = threading.Lock()

    @abstractmethod
    def read_all(self) -> List[str]:
        """Return stored fingerprints, oldest first."""

    def append_bounded(self, fingerprints: Iterable[str]) -> None:
        """
        Append fingerprints and evict the oldest entries beyond ``limit``.

        Concurrent callers are serialized so no append is lost and the bound
        holds after every write.
        """
        new = list(fingerprints)
        if not new:
            return
        with self._lock:
            self._append_locked(new)

    @abstractmethod
    def _append_locked(self, fingerprints: List[str]) -> None:
        ...


class InMemoryFingerprintRepository(FingerprintRepository):
    def __init__(self, initial: Optional[Iterable[str]] = None, limit: int = DEFAULT_STORE_LIMIT):
        super().__init__(limit)
        self._items: List[str] = list(initial or [])[-limit:]

    def read_all(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def _append_locked(self, fingerprints: List[str]) -> None:
        self._items = (self._items + fingerprints)[-self.limit:]


class JsonFileFingerprintRepository(FingerprintRepository):
    """Fingerprints kept as a JSON array in a single file."""

    def __init__(self, path: str | Path, limit: int = DEFAULT_STORE_LIMIT):
        super().__init__(limit)
        self.path = Path(path)

    def _read(self) -> List[str]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreIOError(f"Cannot read fingerprint store {self.path}: {e}") from e
        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreIOError(f"Fingerprint store {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise StoreIOError(f"Fingerprint store {self.path} does not hold a JSON array")
        return [item for item in data if isinstance(item, str)]

    def read_all(self) -> List[str]:
        with self._lock:
            return self._read()

    def _append_locked(self, fingerprints: List[str]) -> None:
        items = (self._read() + fingerprints)[-self.limit:]
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{self.path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(items, f, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error(f"Failed to write fingerprint store {self.path}: {e}")
            raise StoreIOError(f"Cannot write fingerprint store {self.path}: {e}") from e


metadata = MetaData()

fingerprint_table = Table(
    "image_fingerprint",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("fingerprint", String(64), nullable=False),
)


class SqlFingerprintRepository(FingerprintRepository):
    """Fingerprints kept as rows of ``image_fingerprint``, newest ``limit`` rows retained."""

    def __init__(self, engine: Engine | str, limit: int = DEFAULT_STORE_LIMIT):
        super().__init__(limit)
        self.engine = create_engine(engine, future=True) if isinstance(engine, str) else engine
        self._schema_ready = False

    def _ensure_schema(self) -> None:
        if self._schema_ready:
            return
        metadata.create_all(self.engine)
        self._schema_ready = True

    def read_all(self) -> List[str]:
        try:
            self._ensure_schema()
            with self.engine.connect() as conn:
                rows = conn.execute(
                    text("SELECT fingerprint FROM image_fingerprint ORDER BY id")
                )
                return [row[0] for row in rows]
        except SQLAlchemyError as e:
            raise StoreIOError(f"Cannot read fingerprint store: {e}") from e

    def _append_locked(self, fingerprints: List[str]) -> None:
        try:
            self._ensure_schema()
            with self.engine.begin() as conn:
                conn.execute(
                    fingerprint_table.insert(),
                    [{"fingerprint": fp} for fp in fingerprints],
                )
                cutoff = conn.execute(
                    text(
                        "SELECT id FROM image_fingerprint ORDER BY id DESC LIMIT 1 OFFSET :offset"
                    ),
                    {"offset": self.limit - 1},
                ).scalar()
                if cutoff is not None:
                    conn.execute(
                        text("DELETE FROM image_fingerprint WHERE id < :cutoff"),
                        {"cutoff": cutoff},
                    )
        except SQLAlchemyError as e:
            logger.error(f"Failed to write fingerprint store: {e}")
            raise StoreIOError(f"Cannot write fingerprint store: {e}") from e


def build_repository(config: Optional[EngineSettings] = None) -> FingerprintRepository:
    """Create the repository selected by ``VERIFY_STORE_BACKEND``."""
    config = config or settings
    backend = config.verify_store_backend.lower()
    if backend == "json":
        return JsonFileFingerprintRepository(config.verify_store_path, limit=config.verify_store_limit)
    if backend == "sql":
        return SqlFingerprintRepository(config.verify_store_database_url, limit=config.verify_store_limit)
    if backend == "memory":
        return InMemoryFingerprintRepository(limit=config.verify_store_limit)
    raise ValueError(f"Unknown fingerprint store backend: {backend}")
