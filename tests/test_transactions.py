"""
Tests for the transaction ledger.

The balance invariant is checked after every write:
balance == opening_balance + signed sum of live transactions.
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from fintrack.config import LedgerSettings
from fintrack.errors import AuthorizationError, NotFoundError, StorageError, ValidationError
from fintrack.models import CategoryKind, DateRange, TransactionFilter
from fintrack.services import InMemoryPartitionStore
from fintrack.tracker import create_tracker


class FlakyStore(InMemoryPartitionStore):
    """In-memory store whose writes can be made to fail on demand."""
    
    def __init__(self, name: str):
        super().__init__(name)
        self._skip = 0
        self._fail = 0
    
    def fail_next(self, skip: int = 0) -> None:
        """Let `skip` writes through, then fail the one after."""
        self._skip = skip
        self._fail = 1
    
    def _maybe_fail(self) -> None:
        if not self._fail:
            return
        if self._skip:
            self._skip -= 1
            return
        self._fail -= 1
        raise StorageError("disk full")
    
    def put(self, partition, entity):
        self._maybe_fail()
        super().put(partition, entity)
    
    def delete(self, partition, entity_id):
        self._maybe_fail()
        return super().delete(partition, entity_id)


def assert_invariant(tracker, account_id, owner_id):
    account = tracker.accounts.get_account(account_id, owner_id)
    assert account.balance == account.opening_balance + tracker.transactions.signed_total(
        account_id, owner_id
    )


class TestCreateTransaction:
    """Tests for recording transactions."""
    
    def test_salary_deposit_moves_balance(self, tracker, owner, checking, salary):
        """Test 1000.00 plus a 2500.00 salary gives 3500.00."""
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, salary.id, Decimal("2500.00"), date(2025, 1, 31), "Salary", "income"
        )
        assert transaction.amount == Decimal("2500.00")
        assert tracker.accounts.get_account(checking.id, owner).balance == Decimal("3500.00")
        assert_invariant(tracker, checking.id, owner)
    
    def test_expense_is_stored_negative(self, tracker, owner, checking, food):
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "42.10", date(2025, 1, 3), "Groceries", "EXPENSE"
        )
        assert transaction.amount == Decimal("-42.10")
        assert transaction.kind is CategoryKind.EXPENSE
        assert tracker.accounts.get_account(checking.id, owner).balance == Decimal("957.90")
    
    def test_kind_mismatch_with_category_rejected(self, tracker, owner, checking, food):
        """Test an income entry against the Food expense category is refused."""
        with pytest.raises(ValidationError, match="does not match category 'Food'"):
            tracker.transactions.create_transaction(
                owner, checking.id, food.id, "10", date(2025, 1, 3), "Refund", "income"
            )
        assert tracker.transactions.query_transactions(owner) == []
        assert tracker.accounts.get_account(checking.id, owner).balance == checking.balance
    
    @pytest.mark.parametrize("amount", ["0", "-5", 0])
    def test_non_positive_amount_rejected(self, tracker, owner, checking, food, amount):
        with pytest.raises(ValidationError, match="must be positive"):
            tracker.transactions.create_transaction(
                owner, checking.id, food.id, amount, date(2025, 1, 3), "", "expense"
            )
    
    def test_float_amount_rejected(self, tracker, owner, checking, food):
        with pytest.raises(ValidationError):
            tracker.transactions.create_transaction(
                owner, checking.id, food.id, 9.99, date(2025, 1, 3), "", "expense"
            )
    
    def test_long_description_accepted(self, tracker, owner, checking, food):
        """Test free text has no length cap."""
        description = "x" * 2000
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "5", date(2025, 1, 3), description, "expense"
        )
        assert tracker.transactions.get_transaction(transaction.id, owner).description == description
    
    def test_unknown_account_leaves_no_lock_behind(self, tracker, owner, food):
        locks_before = len(tracker.accounts.locks)
        for _ in range(10):
            with pytest.raises(NotFoundError):
                tracker.transactions.create_transaction(
                    owner, uuid4(), food.id, "5", date(2025, 1, 3), "", "expense"
                )
        assert len(tracker.accounts.locks) == locks_before
    
    def test_foreign_account_leaves_no_lock_behind(self, tracker, checking, other_owner, food):
        locks_before = len(tracker.accounts.locks)
        with pytest.raises(NotFoundError):
            tracker.transactions.create_transaction(
                other_owner, checking.id, food.id, "5", date(2025, 1, 3), "", "expense"
            )
        assert len(tracker.accounts.locks) == locks_before
    
    def test_invalid_kind_rejected(self, tracker, owner, checking, food):
        with pytest.raises(ValidationError, match="Invalid kind"):
            tracker.transactions.create_transaction(
                owner, checking.id, food.id, "5", date(2025, 1, 3), "", "transfer"
            )
    
    def test_unknown_category_raises_not_found(self, tracker, owner, checking):
        with pytest.raises(NotFoundError):
            tracker.transactions.create_transaction(
                owner, checking.id, uuid4(), "5", date(2025, 1, 3), "", "expense"
            )
    
    def test_foreign_account_raises_not_found(self, tracker, checking, other_owner, food):
        """Test another owner cannot book against the account."""
        with pytest.raises(NotFoundError):
            tracker.transactions.create_transaction(
                other_owner, checking.id, food.id, "5", date(2025, 1, 3), "", "expense"
            )
    
    def test_unknown_owner_raises_not_found(self, tracker, checking, food):
        with pytest.raises(NotFoundError, match="User"):
            tracker.transactions.create_transaction(
                uuid4(), checking.id, food.id, "5", date(2025, 1, 3), "", "expense"
            )
    
    def test_round_trip_is_decimal_exact(self, tracker, owner, checking, food):
        """Test a stored amount reads back with the same value."""
        created = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "0.10", date(2025, 1, 3), " Coffee ", "expense"
        )
        fetched = tracker.transactions.get_transaction(created.id, owner)
        assert fetched == created
        assert fetched.amount == Decimal("-0.1")
        assert fetched.description == "Coffee"
    
    def test_balance_write_failure_rolls_back_transaction(self):
        """Test nothing is recorded when the balance delta cannot be stored."""
        stores = {}
        
        def factory(collection, model):
            stores[collection] = FlakyStore(collection)
            return stores[collection]
        
        tracker = create_tracker(settings=LedgerSettings(), store_factory=factory)
        owner = tracker.register_user()
        account = tracker.accounts.create_account(owner, "Checking", "100", "checking")
        food = tracker.categories.create_category("Food", "expense")
        
        stores["accounts"].fail_next()
        with pytest.raises(StorageError):
            tracker.transactions.create_transaction(
                owner, account.id, food.id, "30", date(2025, 1, 3), "", "expense"
            )
        
        assert tracker.transactions.query_transactions(owner) == []
        assert tracker.accounts.get_account(account.id, owner).balance == Decimal("100")


class TestUpdateTransaction:
    """Tests for rewriting transactions."""
    
    def test_update_amount_on_same_account(self, tracker, owner, checking, food):
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "100", date(2025, 1, 3), "", "expense"
        )
        updated = tracker.transactions.update_transaction(
            transaction.id, owner, checking.id, food.id, "40", date(2025, 1, 4), "Less"
        )
        assert updated.amount == Decimal("-40")
        assert updated.kind is CategoryKind.EXPENSE
        assert tracker.accounts.get_account(checking.id, owner).balance == Decimal("960.00")
        assert_invariant(tracker, checking.id, owner)
    
    def test_move_between_accounts(self, tracker, owner, checking, savings, salary):
        """Test the old account loses the effect and the new one gains it."""
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, salary.id, "500", date(2025, 1, 3), "", "income"
        )
        tracker.transactions.update_transaction(
            transaction.id, owner, savings.id, salary.id, "500", date(2025, 1, 3), ""
        )
        assert tracker.accounts.get_account(checking.id, owner).balance == Decimal("1000.00")
        assert tracker.accounts.get_account(savings.id, owner).balance == Decimal("500")
        assert_invariant(tracker, checking.id, owner)
        assert_invariant(tracker, savings.id, owner)
    
    def test_negative_amount_uses_magnitude(self, tracker, owner, checking, salary):
        """Test the sign of an update amount is ignored."""
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, salary.id, "10", date(2025, 1, 3), "", "income"
        )
        updated = tracker.transactions.update_transaction(
            transaction.id, owner, checking.id, salary.id, "-25", date(2025, 1, 3), ""
        )
        assert updated.amount == Decimal("25")
    
    def test_zero_amount_rejected(self, tracker, owner, checking, food):
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "10", date(2025, 1, 3), "", "expense"
        )
        with pytest.raises(ValidationError, match="non-zero"):
            tracker.transactions.update_transaction(
                transaction.id, owner, checking.id, food.id, "0", date(2025, 1, 3), ""
            )
    
    def test_kind_cannot_change(self, tracker, owner, checking, food, salary):
        """Test moving an expense to an income category is refused without side effects."""
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "10", date(2025, 1, 3), "", "expense"
        )
        with pytest.raises(ValidationError, match="does not match existing transaction kind"):
            tracker.transactions.update_transaction(
                transaction.id, owner, checking.id, salary.id, "10", date(2025, 1, 3), ""
            )
        assert tracker.transactions.get_transaction(transaction.id, owner) == transaction
        assert_invariant(tracker, checking.id, owner)
    
    def test_same_kind_category_switch_allowed(self, tracker, owner, checking, food, rent):
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "10", date(2025, 1, 3), "", "expense"
        )
        updated = tracker.transactions.update_transaction(
            transaction.id, owner, checking.id, rent.id, "10", date(2025, 1, 3), ""
        )
        assert updated.category_id == rent.id
    
    def test_move_to_unknown_account_leaves_no_lock_behind(self, tracker, owner, checking, food):
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "10", date(2025, 1, 3), "", "expense"
        )
        locks_before = len(tracker.accounts.locks)
        with pytest.raises(NotFoundError):
            tracker.transactions.update_transaction(
                transaction.id, owner, uuid4(), food.id, "10", date(2025, 1, 3), ""
            )
        assert len(tracker.accounts.locks) == locks_before
    
    def test_unknown_transaction_raises_not_found(self, tracker, owner, checking, food):
        with pytest.raises(NotFoundError):
            tracker.transactions.update_transaction(
                uuid4(), owner, checking.id, food.id, "10", date(2025, 1, 3), ""
            )
    
    def test_move_to_foreign_account_refused(self, tracker, owner, checking, other_owner, food):
        foreign = tracker.accounts.create_account(other_owner, "Theirs", "0", "cash")
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "10", date(2025, 1, 3), "", "expense"
        )
        with pytest.raises((NotFoundError, AuthorizationError)):
            tracker.transactions.update_transaction(
                transaction.id, owner, foreign.id, food.id, "10", date(2025, 1, 3), ""
            )
        assert tracker.accounts.get_account(foreign.id, other_owner).balance == 0
    
    def test_failed_update_restores_both_balances(self):
        """Test a failure on the second balance write undoes the first."""
        stores = {}
        
        def factory(collection, model):
            stores[collection] = FlakyStore(collection)
            return stores[collection]
        
        tracker = create_tracker(settings=LedgerSettings(), store_factory=factory)
        owner = tracker.register_user()
        source = tracker.accounts.create_account(owner, "Source", "100", "checking")
        target = tracker.accounts.create_account(owner, "Target", "0", "savings")
        food = tracker.categories.create_category("Food", "expense")
        transaction = tracker.transactions.create_transaction(
            owner, source.id, food.id, "30", date(2025, 1, 3), "", "expense"
        )
        
        stores["accounts"].fail_next(skip=1)
        with pytest.raises(StorageError):
            tracker.transactions.update_transaction(
                transaction.id, owner, target.id, food.id, "20", date(2025, 1, 3), ""
            )
        
        assert tracker.accounts.get_account(source.id, owner).balance == Decimal("70")
        assert tracker.accounts.get_account(target.id, owner).balance == Decimal("0")
        assert tracker.transactions.get_transaction(transaction.id, owner) == transaction


class TestDeleteTransaction:
    """Tests for removing transactions."""
    
    def test_delete_reverses_effect(self, tracker, owner, checking, food):
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "75.25", date(2025, 1, 3), "", "expense"
        )
        tracker.transactions.delete_transaction(transaction.id, owner)
        
        assert tracker.accounts.get_account(checking.id, owner).balance == Decimal("1000.00")
        with pytest.raises(NotFoundError):
            tracker.transactions.get_transaction(transaction.id, owner)
    
    def test_delete_twice_raises_not_found(self, tracker, owner, checking, food):
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "5", date(2025, 1, 3), "", "expense"
        )
        tracker.transactions.delete_transaction(transaction.id, owner)
        with pytest.raises(NotFoundError):
            tracker.transactions.delete_transaction(transaction.id, owner)
    
    def test_other_owner_cannot_delete(self, tracker, owner, checking, food, other_owner):
        transaction = tracker.transactions.create_transaction(
            owner, checking.id, food.id, "5", date(2025, 1, 3), "", "expense"
        )
        with pytest.raises(NotFoundError):
            tracker.transactions.delete_transaction(transaction.id, other_owner)
        assert tracker.transactions.get_transaction(transaction.id, owner) == transaction
    
    def test_failed_delete_restores_balance(self):
        stores = {}
        
        def factory(collection, model):
            stores[collection] = FlakyStore(collection)
            return stores[collection]
        
        tracker = create_tracker(settings=LedgerSettings(), store_factory=factory)
        owner = tracker.register_user()
        account = tracker.accounts.create_account(owner, "Checking", "100", "checking")
        food = tracker.categories.create_category("Food", "expense")
        transaction = tracker.transactions.create_transaction(
            owner, account.id, food.id, "30", date(2025, 1, 3), "", "expense"
        )
        
        stores["transactions"].fail_next()
        with pytest.raises(StorageError):
            tracker.transactions.delete_transaction(transaction.id, owner)
        
        assert tracker.accounts.get_account(account.id, owner).balance == Decimal("70")
        assert tracker.transactions.get_transaction(transaction.id, owner) == transaction


class TestQueryTransactions:
    """Tests for filtered snapshots."""
    
    @pytest.fixture
    def booked(self, tracker, owner, checking, savings, salary, food, rent):
        create = tracker.transactions.create_transaction
        return [
            create(owner, checking.id, food.id, "20", date(2025, 1, 15), "", "expense"),
            create(owner, checking.id, salary.id, "2500", date(2025, 1, 31), "", "income"),
            create(owner, savings.id, rent.id, "800", date(2025, 2, 1), "", "expense"),
            create(owner, checking.id, food.id, "35", date(2025, 1, 1), "", "expense"),
        ]
    
    def test_unfiltered_is_ordered_by_date(self, tracker, owner, booked):
        dates = [t.transaction_date for t in tracker.transactions.query_transactions(owner)]
        assert dates == sorted(dates)
        assert len(dates) == 4
    
    def test_filter_by_account(self, tracker, owner, savings, booked):
        result = tracker.transactions.query_transactions(
            owner, TransactionFilter(account_id=savings.id)
        )
        assert [t.id for t in result] == [booked[2].id]
    
    def test_filter_by_category_and_kind(self, tracker, owner, food, booked):
        result = tracker.transactions.query_transactions(
            owner, TransactionFilter(category_id=food.id, kind=CategoryKind.EXPENSE)
        )
        assert {t.id for t in result} == {booked[0].id, booked[3].id}
    
    def test_date_range_is_inclusive(self, tracker, owner, booked):
        result = tracker.transactions.query_transactions(
            owner,
            TransactionFilter(date_range=DateRange(start=date(2025, 1, 15), end=date(2025, 1, 31))),
        )
        assert [t.id for t in result] == [booked[0].id, booked[1].id]
    
    def test_other_owner_sees_nothing(self, tracker, other_owner, booked):
        assert tracker.transactions.query_transactions(other_owner) == []
    
    def test_result_is_a_snapshot(self, tracker, owner, checking, food, booked):
        """Test later writes do not change an earlier result."""
        snapshot = tracker.transactions.query_transactions(owner)
        tracker.transactions.create_transaction(
            owner, checking.id, food.id, "1", date(2025, 3, 1), "", "expense"
        )
        assert len(snapshot) == 4
    
    def test_sign_matches_kind_everywhere(self, tracker, owner, booked):
        for transaction in tracker.transactions.query_transactions(owner):
            assert (transaction.amount > 0) == (transaction.kind is CategoryKind.INCOME)
    
    def test_invariant_holds_after_mixed_writes(
        self, tracker, owner, checking, savings, food, booked
    ):
        tracker.transactions.update_transaction(
            booked[0].id, owner, savings.id, food.id, "60", date(2025, 1, 16), ""
        )
        tracker.transactions.delete_transaction(booked[1].id, owner)
        
        assert_invariant(tracker, checking.id, owner)
        assert_invariant(tracker, savings.id, owner)
