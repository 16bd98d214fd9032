"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON document per collection is enough for a
personal ledger:
1. The file is human-readable and easy to back up
2. No database setup required
3. Whole-file rewrites keep each write all-or-nothing on disk

TRADEOFFS:
- Every write rewrites the whole collection (fine for personal volumes)
- No cross-collection transactions (the services compensate on failure)

Layout of ``<data_dir>/<collection>.json``::

    {"<partition>": {"<entity id>": {...model fields...}}}

Partition keys are stored as strings, so a partition is addressed by
``str(key)`` on both the write and the read path.
"""

import json
import os
import tempfile
import threading
from collections.abc import Hashable
from pathlib import Path
from typing import Optional
from uuid import UUID

from pydantic import ValidationError as ModelValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from fintrack.errors import StorageError
from fintrack.log import get_logger
from fintrack.services.storage.interface import ModelT, PartitionStore


class JsonFilePartitionStore(PartitionStore[ModelT]):
    """
    File-backed partition store.
    
    The collection is loaded once and cached in memory; reads are served
    from the cache and every write flushes the full document.
    """
    
    def __init__(
        self,
        data_dir: Path,
        collection: str,
        model: type[ModelT],
        retry_attempts: int = 3,
    ):
        self._path = Path(data_dir) / f"{collection}.json"
        self._model = model
        self._retry_attempts = retry_attempts
        self._lock = threading.Lock()
        self._logger = get_logger(__name__).bind(collection=collection)
        self._rows: dict[str, dict[UUID, ModelT]] = self._load()
    
    @property
    def path(self) -> Path:
        return self._path
    
    def _load(self) -> dict[str, dict[UUID, ModelT]]:
        """Read the collection file, or start empty if it doesn't exist."""
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self._path}: {e}")
        
        rows: dict[str, dict[UUID, ModelT]] = {}
        for partition, entities in raw.items():
            try:
                rows[partition] = {
                    UUID(entity_id): self._model.model_validate(data)
                    for entity_id, data in entities.items()
                }
            except (ValueError, ModelValidationError) as e:
                raise StorageError(
                    f"Corrupt row in {self._path} partition {partition}: {e}"
                )
        self._logger.debug("collection_loaded", partitions=len(rows))
        return rows
    
    def _dump(self) -> str:
        document = {
            partition: {
                str(entity_id): entity.model_dump(mode="json")
                for entity_id, entity in entities.items()
            }
            for partition, entities in self._rows.items()
        }
        return json.dumps(document, indent=2, sort_keys=True)
    
    def _flush(self) -> None:
        """Write the collection atomically, retrying transient I/O errors."""
        payload = self._dump()
        
        @retry(
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        def write() -> None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.stem}-", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                os.replace(tmp_name, self._path)
            except OSError:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        
        try:
            write()
        except OSError as e:
            self._logger.error("collection_write_failed", path=str(self._path), error=str(e))
            raise StorageError(f"Failed to write {self._path}: {e}")
    
    def get(self, partition: Hashable, entity_id: UUID) -> Optional[ModelT]:
        return self._rows.get(str(partition), {}).get(entity_id)
    
    def put(self, partition: Hashable, entity: ModelT) -> None:
        key = str(partition)
        with self._lock:
            rows = self._rows.setdefault(key, {})
            previous = rows.get(entity.id)
            rows[entity.id] = entity
            try:
                self._flush()
            except StorageError:
                # Keep the cache identical to what is on disk
                if previous is None:
                    del rows[entity.id]
                    if not rows:
                        del self._rows[key]
                else:
                    rows[entity.id] = previous
                raise
    
    def delete(self, partition: Hashable, entity_id: UUID) -> bool:
        key = str(partition)
        with self._lock:
            rows = self._rows.get(key)
            if rows is None or entity_id not in rows:
                return False
            removed = rows.pop(entity_id)
            if not rows:
                del self._rows[key]
            try:
                self._flush()
            except StorageError:
                self._rows.setdefault(key, {})[entity_id] = removed
                raise
            return True
    
    def list_rows(self, partition: Hashable) -> list[ModelT]:
        with self._lock:
            return list(self._rows.get(str(partition), {}).values())
    
    def partitions(self) -> list[Hashable]:
        with self._lock:
            return list(self._rows.keys())
