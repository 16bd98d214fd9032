"""
Budget Tracker

Spending limits over sets of expense categories, scoped per owner.

This component only validates and stores budgets. How much of a budget
has been spent is a reporting question, answered by the report
aggregator from ledger query results.
"""

import threading
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from fintrack.errors import AuthorizationError, NotFoundError, ValidationError
from fintrack.log import get_logger
from fintrack.models import Budget, CategoryKind
from fintrack.services.categories import CategoryRegistry
from fintrack.services.storage import PartitionStore
from fintrack.services.users import UserDirectory
from fintrack.validation import require_date_range, require_positive, require_text


class BudgetTracker:
    """Owner-scoped CRUD for budgets with category-set validation."""
    
    def __init__(
        self,
        store: PartitionStore[Budget],
        categories: CategoryRegistry,
        users: UserDirectory,
    ):
        self._store = store
        self._categories = categories
        self._users = users
        self._lock = threading.Lock()
        self._logger = get_logger(__name__)
        
        categories.register_usage_probe(self.category_in_use)
    
    def _validate(
        self,
        name: str,
        limit_amount: Decimal | int | str,
        start_date: date,
        end_date: date,
        category_ids: Iterable[UUID],
    ) -> dict:
        """Check every budget field and return the normalized values."""
        name = require_text(name, "Budget name")
        limit = require_positive(limit_amount, "Budget limit amount")
        period = require_date_range(start_date, end_date)
        
        ordered = list(dict.fromkeys(category_ids or ()))
        if not ordered:
            raise ValidationError("Budget must include at least one category")
        
        for category_id in ordered:
            # NotFoundError propagates as is
            category = self._categories.get_category(category_id)
            if category.kind is not CategoryKind.EXPENSE:
                raise ValidationError(
                    f"Budget can only include expense categories. Category "
                    f"'{category.name}' ({category_id}) is of kind '{category.kind.value}'"
                )
        
        return {
            "name": name,
            "limit_amount": limit,
            "start_date": period.start,
            "end_date": period.end,
            "category_ids": frozenset(ordered),
        }
    
    def create_budget(
        self,
        owner_id: UUID,
        name: str,
        limit_amount: Decimal | int | str,
        start_date: date,
        end_date: date,
        category_ids: Iterable[UUID],
    ) -> Budget:
        """
        Create a budget.
        
        Raises:
            NotFoundError: Unknown owner or category
            ValidationError: Blank name, non-positive limit, inverted period,
                empty category set, or a non-expense category
        """
        self._users.require(owner_id)
        
        # Categories stay as validated until the budget is stored
        with self._categories.reading(), self._lock:
            fields = self._validate(name, limit_amount, start_date, end_date, category_ids)
            budget = Budget(owner_id=owner_id, **fields)
            self._store.put(owner_id, budget)
        
        self._logger.info(
            "budget_created",
            budget_id=str(budget.id),
            owner_id=str(owner_id),
            limit_amount=str(budget.limit_amount),
            categories=len(budget.category_ids),
        )
        return budget
    
    def get_budget(self, budget_id: UUID, owner_id: UUID) -> Budget:
        self._users.require(owner_id)
        budget = self._store.get(owner_id, budget_id)
        if budget is None:
            raise NotFoundError(f"Budget with ID {budget_id} not found for user {owner_id}")
        if budget.owner_id != owner_id:
            raise AuthorizationError(
                f"User {owner_id} is not authorized to access budget {budget_id}"
            )
        return budget
    
    def list_budgets(self, owner_id: UUID) -> list[Budget]:
        self._users.require(owner_id)
        return self._store.list_rows(owner_id)
    
    def update_budget(
        self,
        budget_id: UUID,
        owner_id: UUID,
        name: str,
        limit_amount: Decimal | int | str,
        start_date: date,
        end_date: date,
        category_ids: Iterable[UUID],
        active: bool,
    ) -> Budget:
        """Replace every field of a budget, validated as on create."""
        self.get_budget(budget_id, owner_id)
        
        with self._categories.reading(), self._lock:
            fields = self._validate(name, limit_amount, start_date, end_date, category_ids)
            budget = self.get_budget(budget_id, owner_id)
            updated = budget.model_copy(update={**fields, "active": bool(active)})
            self._store.put(owner_id, updated)
        
        self._logger.info("budget_updated", budget_id=str(budget_id), owner_id=str(owner_id))
        return updated
    
    def delete_budget(self, budget_id: UUID, owner_id: UUID) -> None:
        with self._lock:
            self.get_budget(budget_id, owner_id)
            self._store.delete(owner_id, budget_id)
        
        self._logger.info("budget_deleted", budget_id=str(budget_id), owner_id=str(owner_id))
    
    def category_in_use(self, category_id: UUID) -> bool:
        return any(category_id in b.category_ids for b in self._store.scan())
