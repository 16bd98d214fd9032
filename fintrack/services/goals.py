"""
Goal Tracker

Savings goals, scoped per owner.

Completion is never stored: FinancialGoal.completed is computed from the
amounts, so it follows every change to either of them.

NOTE: create rejects a current amount above the target while update
clamps it to the target. Contributions are clamped the same way.
"""

import threading
from datetime import date
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from fintrack.errors import AuthorizationError, NotFoundError, ValidationError
from fintrack.log import get_logger
from fintrack.models import FinancialGoal
from fintrack.services.storage import PartitionStore
from fintrack.services.users import UserDirectory
from fintrack.validation import require_date, require_non_negative, require_positive, require_text


class GoalTracker:
    """Owner-scoped CRUD and contributions for savings goals."""
    
    def __init__(
        self,
        store: PartitionStore[FinancialGoal],
        users: UserDirectory,
        today: Optional[Callable[[], date]] = None,
    ):
        self._store = store
        self._users = users
        self._today = today or date.today
        self._lock = threading.Lock()
        self._logger = get_logger(__name__)
    
    def _check_deadline(self, deadline: date, current: Decimal, target: Decimal) -> None:
        """Open goals need a deadline of today or later."""
        if current < target and deadline < self._today():
            raise ValidationError(
                f"Deadline {deadline} must be in the future for goals that are not completed"
            )
    
    def create_goal(
        self,
        owner_id: UUID,
        name: str,
        target_amount: Decimal | int | str,
        current_amount: Decimal | int | str,
        deadline: date,
    ) -> FinancialGoal:
        """
        Create a savings goal.
        
        Raises:
            NotFoundError: Unknown owner
            ValidationError: Blank name, non-positive target, negative or
                excessive current amount, past deadline on an open goal
        """
        self._users.require(owner_id)
        name = require_text(name, "Financial goal name")
        target = require_positive(target_amount, "Target amount")
        current = require_non_negative(current_amount, "Current amount")
        if current > target:
            raise ValidationError("Current amount cannot exceed target amount")
        deadline = require_date(deadline, "Deadline")
        self._check_deadline(deadline, current, target)
        
        goal = FinancialGoal(
            owner_id=owner_id,
            name=name,
            target_amount=target,
            current_amount=current,
            deadline=deadline,
        )
        self._store.put(owner_id, goal)
        
        self._logger.info(
            "goal_created",
            goal_id=str(goal.id),
            owner_id=str(owner_id),
            target_amount=str(target),
            completed=goal.completed,
        )
        return goal
    
    def get_goal(self, goal_id: UUID, owner_id: UUID) -> FinancialGoal:
        self._users.require(owner_id)
        goal = self._store.get(owner_id, goal_id)
        if goal is None:
            raise NotFoundError(
                f"Financial goal with ID {goal_id} not found for user {owner_id}"
            )
        if goal.owner_id != owner_id:
            raise AuthorizationError(
                f"User {owner_id} is not authorized to access financial goal {goal_id}"
            )
        return goal
    
    def list_goals(self, owner_id: UUID) -> list[FinancialGoal]:
        self._users.require(owner_id)
        return self._store.list_rows(owner_id)
    
    def update_goal(
        self,
        goal_id: UUID,
        owner_id: UUID,
        name: str,
        target_amount: Decimal | int | str,
        current_amount: Decimal | int | str,
        deadline: date,
    ) -> FinancialGoal:
        """
        Replace a goal's fields.
        
        A current amount above the target is clamped to the target.
        The deadline rule applies to the goal as it will be after the
        update.
        """
        name = require_text(name, "Financial goal name")
        target = require_positive(target_amount, "Target amount")
        current = min(require_non_negative(current_amount, "Current amount"), target)
        deadline = require_date(deadline, "Deadline")
        
        with self._lock:
            goal = self.get_goal(goal_id, owner_id)
            self._check_deadline(deadline, current, target)
            updated = goal.model_copy(
                update={
                    "name": name,
                    "target_amount": target,
                    "current_amount": current,
                    "deadline": deadline,
                }
            )
            self._store.put(owner_id, updated)
        
        self._logger.info(
            "goal_updated",
            goal_id=str(goal_id),
            owner_id=str(owner_id),
            completed=updated.completed,
        )
        return updated
    
    def add_contribution(
        self,
        goal_id: UUID,
        owner_id: UUID,
        amount: Decimal | int | str,
    ) -> FinancialGoal:
        """
        Add money towards a goal.
        
        Raises:
            ValidationError: Non-positive amount or goal already completed
        """
        contribution = require_positive(amount, "Contribution amount")
        
        with self._lock:
            goal = self.get_goal(goal_id, owner_id)
            if goal.completed:
                raise ValidationError("Cannot add contribution to an already completed goal")
            updated = goal.model_copy(
                update={
                    "current_amount": min(goal.current_amount + contribution, goal.target_amount)
                }
            )
            self._store.put(owner_id, updated)
        
        self._logger.info(
            "goal_contribution_added",
            goal_id=str(goal_id),
            amount=str(contribution),
            completed=updated.completed,
        )
        return updated
    
    def delete_goal(self, goal_id: UUID, owner_id: UUID) -> None:
        with self._lock:
            self.get_goal(goal_id, owner_id)
            self._store.delete(owner_id, goal_id)
        
        self._logger.info("goal_deleted", goal_id=str(goal_id), owner_id=str(owner_id))
