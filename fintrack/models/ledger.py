"""
Core Data Models for fintrack

These models define the strict schemas for every entity the ledger keeps.
They are designed to:
1. Carry monetary values as Decimal, never float
2. Be immutable once built (services publish new versions with model_copy)
3. Be serializable for any storage backend
4. Derive state (goal completion) instead of caching it

DESIGN DECISION: The services validate every input explicitly and raise
the ledger's own errors. Model-level validators are a second line that
should never fire for data that came through a service.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CategoryKind(str, Enum):
    """
    Direction of money flow for a category and its transactions.
    
    The kind fixes the sign of a transaction amount:
    income is stored positive, expense negative.
    """
    INCOME = "income"
    EXPENSE = "expense"
    
    @property
    def sign(self) -> int:
        return 1 if self is CategoryKind.INCOME else -1


class ReportKind(str, Enum):
    """Reports the aggregator knows how to fold."""
    SPENDING_BY_CATEGORY = "spending_by_category"
    INCOME_VS_EXPENSE = "income_vs_expense"


_ENTITY_CONFIG = ConfigDict(str_strip_whitespace=True, frozen=True)


# =============================================================================
# ENTITIES
# =============================================================================

class Category(BaseModel):
    """
    A global income or expense category.
    
    (name, kind) is unique across the registry, compared case-insensitively.
    """
    model_config = _ENTITY_CONFIG
    
    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1)
    kind: CategoryKind
    icon: str = ""
    
    @property
    def unique_key(self) -> tuple[str, CategoryKind]:
        return self.name.casefold(), self.kind


class Account(BaseModel):
    """
    A user-owned account.
    
    CRITICAL: balance == opening_balance + signed sum of the account's
    live transactions. Only the transaction ledger moves it.
    """
    model_config = _ENTITY_CONFIG
    
    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    name: str = Field(..., min_length=1)
    type: str = Field(
        ...,
        min_length=1,
        description="Free-text tag, e.g. checking, savings, cash"
    )
    balance: Decimal
    opening_balance: Decimal = Field(
        ...,
        ge=0,
        description="Balance the account was created with"
    )
    active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Transaction(BaseModel):
    """
    A single income or expense entry against one account.
    
    The amount is stored signed: positive for income, negative for
    expense. Callers never supply the sign; the ledger derives it
    from kind. Kind is fixed at creation.
    """
    model_config = _ENTITY_CONFIG
    
    id: UUID = Field(default_factory=uuid4)
    account_id: UUID
    category_id: UUID
    amount: Decimal
    transaction_date: date
    description: str = ""
    kind: CategoryKind
    
    @model_validator(mode='after')
    def validate_sign(self) -> 'Transaction':
        """Amount sign must agree with kind."""
        if self.amount == 0 or (self.amount > 0) != (self.kind is CategoryKind.INCOME):
            raise ValueError(
                f"Amount {self.amount} does not match transaction kind {self.kind.value}"
            )
        return self
    
    @property
    def magnitude(self) -> Decimal:
        return abs(self.amount)


class Budget(BaseModel):
    """A spending limit over a set of expense categories for a date range."""
    model_config = _ENTITY_CONFIG
    
    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    name: str = Field(..., min_length=1)
    limit_amount: Decimal = Field(..., gt=0)
    start_date: date
    end_date: date
    category_ids: frozenset[UUID] = Field(..., min_length=1)
    active: bool = True
    
    @model_validator(mode='after')
    def validate_dates(self) -> 'Budget':
        if self.end_date < self.start_date:
            raise ValueError("Budget end date cannot be before start date")
        return self


class FinancialGoal(BaseModel):
    """
    A savings target.
    
    completed is derived from the amounts on every read, so it can never
    drift from them.
    """
    model_config = _ENTITY_CONFIG
    
    id: UUID = Field(default_factory=uuid4)
    owner_id: UUID
    name: str = Field(..., min_length=1)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(..., ge=0)
    deadline: date
    
    @computed_field
    @property
    def completed(self) -> bool:
        return self.current_amount >= self.target_amount
    
    @property
    def remaining(self) -> Decimal:
        return max(self.target_amount - self.current_amount, Decimal("0"))


# =============================================================================
# QUERY MODELS
# =============================================================================

class DateRange(BaseModel):
    """Inclusive [start, end] date interval."""
    model_config = ConfigDict(frozen=True)
    
    start: date
    end: date
    
    @model_validator(mode='after')
    def validate_order(self) -> 'DateRange':
        if self.end < self.start:
            raise ValueError("Date range end cannot be before start")
        return self
    
    def __contains__(self, day: date) -> bool:
        return self.start <= day <= self.end


class TransactionFilter(BaseModel):
    """
    Conjunctive transaction filter.
    
    Every field is optional; an empty filter matches everything.
    """
    model_config = ConfigDict(frozen=True)
    
    account_id: Optional[UUID] = None
    category_id: Optional[UUID] = None
    date_range: Optional[DateRange] = None
    kind: Optional[CategoryKind] = None
    
    def matches(self, transaction: Transaction) -> bool:
        if self.account_id is not None and transaction.account_id != self.account_id:
            return False
        if self.category_id is not None and transaction.category_id != self.category_id:
            return False
        if self.date_range is not None and transaction.transaction_date not in self.date_range:
            return False
        if self.kind is not None and transaction.kind is not self.kind:
            return False
        return True


# =============================================================================
# REPORT MODELS
# =============================================================================

class SpendingByCategoryReport(BaseModel):
    """Expense magnitudes summed per category over a date range."""
    
    owner_id: UUID
    date_range: DateRange
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    totals: dict[UUID, Decimal] = Field(default_factory=dict)
    
    @computed_field
    @property
    def total_spent(self) -> Decimal:
        return sum(self.totals.values(), Decimal("0"))


class IncomeVsExpenseReport(BaseModel):
    """Income and expense totals (both as magnitudes) over a date range."""
    
    owner_id: UUID
    date_range: DateRange
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    
    @computed_field
    @property
    def net_flow(self) -> Decimal:
        return self.total_income - self.total_expense


class BudgetProgress(BaseModel):
    """Spend against a budget's limit over the budget's own period."""
    
    budget_id: UUID
    owner_id: UUID
    limit_amount: Decimal
    spent: Decimal
    transaction_count: int = Field(ge=0)
    
    @computed_field
    @property
    def remaining(self) -> Decimal:
        return self.limit_amount - self.spent
    
    @computed_field
    @property
    def exceeded(self) -> bool:
        return self.spent > self.limit_amount
