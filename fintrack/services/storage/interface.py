"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the in-memory reference store for a durable one
2. Keep the balance protocol independent of the backend
3. Use a throwaway store in tests

Every collection is partitioned: rows live under a partition key (the
owner's id, or GLOBAL_PARTITION for shared catalogs) and then under
their own id. A lookup that does not name the owner's partition cannot
reach another owner's rows.

The interface is intentionally small - we're not building an ORM.
"""

from abc import ABC, abstractmethod
from collections.abc import Hashable
from typing import Generic, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel


GLOBAL_PARTITION = "global"

ModelT = TypeVar("ModelT", bound=BaseModel)


class PartitionStore(ABC, Generic[ModelT]):
    """
    Abstract interface for one partitioned collection of entities.
    
    Entities must carry an ``id`` attribute. Implementations must be
    safe to call from several threads; they do not need to provide
    multi-call atomicity, the services hold their own locks for that.
    """
    
    @abstractmethod
    def get(self, partition: Hashable, entity_id: UUID) -> Optional[ModelT]:
        """
        Retrieve an entity from a partition.
        
        Returns:
            The entity if found, None otherwise
        """
        pass
    
    @abstractmethod
    def put(self, partition: Hashable, entity: ModelT) -> None:
        """
        Insert or replace an entity under its id.
        
        Raises:
            StorageError: If the write fails
        """
        pass
    
    @abstractmethod
    def delete(self, partition: Hashable, entity_id: UUID) -> bool:
        """
        Remove an entity.
        
        Returns:
            True if something was removed
        """
        pass
    
    @abstractmethod
    def list_rows(self, partition: Hashable) -> list[ModelT]:
        """
        All entities in a partition, in insertion order.
        
        Returns an independent list; later writes do not affect it.
        """
        pass
    
    @abstractmethod
    def partitions(self) -> list[Hashable]:
        """Keys of every non-empty partition."""
        pass
    
    def scan(self) -> list[ModelT]:
        """Every entity across all partitions."""
        rows: list[ModelT] = []
        for partition in self.partitions():
            rows.extend(self.list_rows(partition))
        return rows
