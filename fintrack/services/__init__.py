"""Services package."""

from fintrack.services.accounts import AccountStore
from fintrack.services.budgets import BudgetTracker
from fintrack.services.categories import CategoryRegistry
from fintrack.services.goals import GoalTracker
from fintrack.services.locks import AccountLocks
from fintrack.services.storage import (
    GLOBAL_PARTITION,
    InMemoryPartitionStore,
    JsonFilePartitionStore,
    PartitionStore,
)
from fintrack.services.transactions import TransactionLedger
from fintrack.services.users import UserDirectory

__all__ = [
    # Ledger components
    "AccountStore",
    "BudgetTracker",
    "CategoryRegistry",
    "GoalTracker",
    "TransactionLedger",
    # Shared capabilities
    "AccountLocks",
    "UserDirectory",
    # Storage
    "GLOBAL_PARTITION",
    "InMemoryPartitionStore",
    "JsonFilePartitionStore",
    "PartitionStore",
]
