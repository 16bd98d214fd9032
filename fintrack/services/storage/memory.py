"""
In-Memory Storage Implementation

The reference backend. Rows are kept as the immutable model instances
the services hand in, so nothing outside the store can change them.
"""

import threading
from collections.abc import Hashable
from typing import Optional
from uuid import UUID

from fintrack.services.storage.interface import ModelT, PartitionStore


class InMemoryPartitionStore(PartitionStore[ModelT]):
    """Dict-of-dicts store: partition -> entity id -> entity."""
    
    def __init__(self, name: str = "memory"):
        self.name = name
        self._rows: dict[Hashable, dict[UUID, ModelT]] = {}
        self._lock = threading.Lock()
    
    def get(self, partition: Hashable, entity_id: UUID) -> Optional[ModelT]:
        return self._rows.get(partition, {}).get(entity_id)
    
    def put(self, partition: Hashable, entity: ModelT) -> None:
        with self._lock:
            self._rows.setdefault(partition, {})[entity.id] = entity
    
    def delete(self, partition: Hashable, entity_id: UUID) -> bool:
        with self._lock:
            rows = self._rows.get(partition)
            if rows is None or entity_id not in rows:
                return False
            del rows[entity_id]
            if not rows:
                del self._rows[partition]
            return True
    
    def list_rows(self, partition: Hashable) -> list[ModelT]:
        with self._lock:
            return list(self._rows.get(partition, {}).values())
    
    def partitions(self) -> list[Hashable]:
        with self._lock:
            return list(self._rows.keys())
