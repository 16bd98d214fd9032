"""
Report Aggregator

DESIGN DECISION: Reports are pure reads. The aggregator pulls the ledger's
filtered transaction snapshot and folds it; it has no write access to any
store.

GUARANTEES:
- Only ever sums real ledger rows
- Decimal-exact totals (no float conversion anywhere)
- Unsupported report kinds fail loudly
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from fintrack.errors import ValidationError
from fintrack.models import (
    BudgetProgress,
    CategoryKind,
    DateRange,
    IncomeVsExpenseReport,
    ReportKind,
    SpendingByCategoryReport,
    Transaction,
    TransactionFilter,
)
from fintrack.services.budgets import BudgetTracker
from fintrack.services.transactions import TransactionLedger
from fintrack.validation import require_date_range


Report = Union[SpendingByCategoryReport, IncomeVsExpenseReport]


def _parse_report_kind(report_kind: ReportKind | str) -> ReportKind:
    if isinstance(report_kind, ReportKind):
        return report_kind
    if isinstance(report_kind, str):
        try:
            return ReportKind(report_kind.strip().lower())
        except ValueError:
            pass
    raise ValidationError(f"Unsupported report type: {report_kind}")


class ReportAggregator:
    """
    Folds ledger query results into report structures.
    
    Export to files is someone else's job: callers serialize the
    returned models however they like (model_dump, model_dump_json).
    """
    
    def __init__(self, ledger: TransactionLedger, budgets: Optional[BudgetTracker] = None):
        self._ledger = ledger
        self._budgets = budgets
    
    def generate(
        self,
        owner_id: UUID,
        report_kind: ReportKind | str,
        start_date: date,
        end_date: date,
        account_id: Optional[UUID] = None,
        category_id: Optional[UUID] = None,
    ) -> Report:
        """
        Generate a report over an inclusive date range.
        
        Args:
            report_kind: 'spending_by_category' or 'income_vs_expense'
            account_id: Optionally restrict to one account
            category_id: Optionally restrict to one category
            
        Raises:
            ValidationError: Unsupported kind or inverted date range
            NotFoundError: Unknown owner
        """
        kind = _parse_report_kind(report_kind)
        period = require_date_range(start_date, end_date)
        
        transactions = self._ledger.query_transactions(
            owner_id,
            TransactionFilter(
                account_id=account_id,
                category_id=category_id,
                date_range=period,
            ),
        )
        
        if kind is ReportKind.SPENDING_BY_CATEGORY:
            return self._spending_by_category(owner_id, period, transactions)
        return self._income_vs_expense(owner_id, period, transactions)
    
    def _spending_by_category(
        self,
        owner_id: UUID,
        period: DateRange,
        transactions: list[Transaction],
    ) -> SpendingByCategoryReport:
        totals: dict[UUID, Decimal] = defaultdict(lambda: Decimal("0"))
        for transaction in transactions:
            if transaction.kind is CategoryKind.EXPENSE:
                totals[transaction.category_id] += transaction.magnitude
        
        return SpendingByCategoryReport(
            owner_id=owner_id,
            date_range=period,
            totals=dict(totals),
        )
    
    def _income_vs_expense(
        self,
        owner_id: UUID,
        period: DateRange,
        transactions: list[Transaction],
    ) -> IncomeVsExpenseReport:
        income = Decimal("0")
        expense = Decimal("0")
        for transaction in transactions:
            if transaction.kind is CategoryKind.INCOME:
                income += transaction.magnitude
            else:
                expense += transaction.magnitude
        
        return IncomeVsExpenseReport(
            owner_id=owner_id,
            date_range=period,
            total_income=income,
            total_expense=expense,
        )
    
    def budget_progress(self, owner_id: UUID, budget_id: UUID) -> BudgetProgress:
        """
        Spend against a budget over the budget's own period.
        
        Sums expense transactions in any of the budget's categories
        dated within [start_date, end_date].
        """
        if self._budgets is None:
            raise ValidationError("Budget progress needs a budget tracker")
        
        budget = self._budgets.get_budget(budget_id, owner_id)
        period = DateRange(start=budget.start_date, end=budget.end_date)
        transactions = [
            t for t in self._ledger.query_transactions(
                owner_id,
                TransactionFilter(date_range=period, kind=CategoryKind.EXPENSE),
            )
            if t.category_id in budget.category_ids
        ]
        spent = sum((t.magnitude for t in transactions), Decimal("0"))
        
        return BudgetProgress(
            budget_id=budget.id,
            owner_id=owner_id,
            limit_amount=budget.limit_amount,
            spent=spent,
            transaction_count=len(transactions),
        )
