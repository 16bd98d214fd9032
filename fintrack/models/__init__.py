"""
Data Models Package

This package contains all Pydantic models used by fintrack.
All data flowing through the ledger must conform to these schemas.
"""

from fintrack.models.ledger import (
    Account,
    Budget,
    BudgetProgress,
    Category,
    CategoryKind,
    DateRange,
    FinancialGoal,
    IncomeVsExpenseReport,
    ReportKind,
    SpendingByCategoryReport,
    Transaction,
    TransactionFilter,
)

__all__ = [
    # Entities
    "Account",
    "Budget",
    "Category",
    "FinancialGoal",
    "Transaction",
    # Enums
    "CategoryKind",
    "ReportKind",
    # Queries
    "DateRange",
    "TransactionFilter",
    # Reports
    "BudgetProgress",
    "IncomeVsExpenseReport",
    "SpendingByCategoryReport",
]
