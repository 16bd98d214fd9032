"""
Component Wiring for fintrack

This module builds every ledger component on top of one shared set of
capabilities:
- one UserDirectory (user existence)
- one AccountLocks registry (balance critical sections)
- one partition store per collection, all from the same backend

DESIGN DECISION: Components never reach into each other's state. The
ledger and the budget tracker tell the category registry (and the
ledger tells the account store) about their references through usage
probes registered at construction time.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel

from fintrack.config import LedgerSettings, StorageSettings, get_settings
from fintrack.log import configure_logging, get_logger
from fintrack.models import Account, Budget, Category, FinancialGoal, Transaction
from fintrack.reports import ReportAggregator
from fintrack.services import (
    AccountLocks,
    AccountStore,
    BudgetTracker,
    CategoryRegistry,
    GoalTracker,
    InMemoryPartitionStore,
    JsonFilePartitionStore,
    PartitionStore,
    TransactionLedger,
    UserDirectory,
)


StoreFactory = Callable[[str, type[BaseModel]], PartitionStore]


@dataclass
class FinanceTracker:
    """Every ledger component, wired together."""
    
    users: UserDirectory
    categories: CategoryRegistry
    accounts: AccountStore
    transactions: TransactionLedger
    budgets: BudgetTracker
    goals: GoalTracker
    reports: ReportAggregator
    
    def register_user(self, user_id: Optional[UUID] = None) -> UUID:
        """Make a user id known to every component and return it."""
        user_id = user_id or uuid4()
        self.users.register(user_id)
        return user_id


def store_factory_for(settings: StorageSettings) -> StoreFactory:
    """Pick the partition store implementation named in settings."""
    if settings.backend == "json":
        def json_store(collection: str, model: type[BaseModel]) -> PartitionStore:
            return JsonFilePartitionStore(
                data_dir=settings.data_dir,
                collection=collection,
                model=model,
                retry_attempts=settings.retry_attempts,
            )
        return json_store
    
    def memory_store(collection: str, model: type[BaseModel]) -> PartitionStore:
        return InMemoryPartitionStore(name=collection)
    return memory_store


def create_tracker(
    settings: Optional[LedgerSettings] = None,
    store_factory: Optional[StoreFactory] = None,
    users: Optional[UserDirectory] = None,
    today: Optional[Callable[[], date]] = None,
) -> FinanceTracker:
    """
    Factory function to create all ledger components.
    
    Args:
        settings: Defaults to get_settings()
        store_factory: Overrides the backend chosen in settings
        users: Share an existing user directory
        today: Clock for goal deadline checks
        
    Returns:
        A FinanceTracker with every component wired
    """
    settings = settings or get_settings()
    configure_logging(settings.logging)
    storage_settings = settings.storage
    make_store = store_factory or store_factory_for(storage_settings)
    
    users = users or UserDirectory()
    locks = AccountLocks()
    
    account_store = make_store("accounts", Account)
    transaction_store = make_store("transactions", Transaction)
    budget_store = make_store("budgets", Budget)
    goal_store = make_store("goals", FinancialGoal)
    
    # Owners of previously persisted rows are known users
    for store in (account_store, transaction_store, budget_store, goal_store):
        for partition in store.partitions():
            users.register(UUID(str(partition)))
    
    categories = CategoryRegistry(make_store("categories", Category))
    accounts = AccountStore(account_store, users, locks)
    transactions = TransactionLedger(transaction_store, accounts, categories, users)
    budgets = BudgetTracker(budget_store, categories, users)
    goals = GoalTracker(goal_store, users, today=today)
    reports = ReportAggregator(transactions, budgets)
    
    get_logger(__name__).info(
        "tracker_created",
        environment=settings.environment,
        storage_backend=storage_settings.backend if store_factory is None else "custom",
    )
    
    return FinanceTracker(
        users=users,
        categories=categories,
        accounts=accounts,
        transactions=transactions,
        budgets=budgets,
        goals=goals,
        reports=reports,
    )
