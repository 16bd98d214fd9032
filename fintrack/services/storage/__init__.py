"""
Storage Services Package

Provides the abstract partition store interface and its implementations.
The in-memory store is the reference backend; the JSON file store keeps
the same contract on disk.
"""

from fintrack.services.storage.interface import (
    GLOBAL_PARTITION,
    PartitionStore,
)
from fintrack.services.storage.json_file import JsonFilePartitionStore
from fintrack.services.storage.memory import InMemoryPartitionStore

__all__ = [
    # Interface
    "GLOBAL_PARTITION",
    "PartitionStore",
    # Implementations
    "InMemoryPartitionStore",
    "JsonFilePartitionStore",
]
