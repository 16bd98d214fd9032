"""
Transaction Ledger

The consistency core. Every create, update and delete performs a matched
pair of (transaction write, balance delta) as one unit:

1. Both happen while the affected account locks are held
2. All validation runs before the first write
3. If the second write fails, the first one is undone before the error
   propagates

GUARANTEE: for every account, balance == opening_balance + the sum of the
signed amounts of its live transactions, at every point a caller can
observe.

Signed amounts: callers pass a positive magnitude and a kind. Income is
stored positive, expense negative. Kind is fixed at creation.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from fintrack.errors import NotFoundError, ValidationError
from fintrack.log import get_logger
from fintrack.models import CategoryKind, Transaction, TransactionFilter
from fintrack.services.accounts import AccountStore
from fintrack.services.categories import CategoryRegistry
from fintrack.services.storage import PartitionStore
from fintrack.services.users import UserDirectory
from fintrack.validation import parse_kind, require_date, require_positive, to_decimal


class TransactionLedger:
    """Records transactions and keeps account balances in step with them."""

    def __init__(
        self,
        store: PartitionStore[Transaction],
        accounts: AccountStore,
        categories: CategoryRegistry,
        users: UserDirectory,
    ):
        self._store = store
        self._accounts = accounts
        self._categories = categories
        self._users = users
        self._locks = accounts.locks
        self._logger = get_logger(__name__)

        categories.register_usage_probe(self.category_in_use)
        accounts.register_usage_probe(self.account_in_use)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_transaction(self, transaction_id: UUID, owner_id: UUID) -> Transaction:
        self._users.require(owner_id)
        transaction = self._store.get(owner_id, transaction_id)
        if transaction is None:
            raise NotFoundError(
                f"Transaction with ID {transaction_id} not found for user {owner_id}"
            )
        return transaction

    def query_transactions(
        self,
        owner_id: UUID,
        filters: Optional[TransactionFilter] = None,
    ) -> list[Transaction]:
        """
        Snapshot of the owner's transactions matching every given filter.

        Results are ordered by date, then id. The list is a copy; later
        writes do not show up in it.
        """
        self._users.require(owner_id)
        filters = filters or TransactionFilter()
        matches = [t for t in self._store.list_rows(owner_id) if filters.matches(t)]
        matches.sort(key=lambda t: (t.transaction_date, str(t.id)))
        return matches

    def signed_total(self, account_id: UUID, owner_id: UUID) -> Decimal:
        """Sum of the signed amounts of an account's live transactions."""
        transactions = self.query_transactions(
            owner_id, TransactionFilter(account_id=account_id)
        )
        return sum((t.amount for t in transactions), Decimal("0"))

    def category_in_use(self, category_id: UUID) -> bool:
        return any(t.category_id == category_id for t in self._store.scan())

    def account_in_use(self, account_id: UUID, owner_id: UUID) -> bool:
        return any(t.account_id == account_id for t in self._store.list_rows(owner_id))

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_transaction(
        self,
        owner_id: UUID,
        account_id: UUID,
        category_id: UUID,
        amount: Decimal | int | str,
        transaction_date: date,
        description: str,
        kind: CategoryKind | str,
    ) -> Transaction:
        """
        Record a new transaction and apply it to the account balance.

        Args:
            amount: Positive magnitude; the sign comes from kind
            kind: 'income' or 'expense', must match the category's kind

        Raises:
            NotFoundError: Unknown owner, account or category
            AuthorizationError: Account belongs to another owner
            ValidationError: Bad kind, non-positive amount, kind mismatch
        """
        # Resolve before locking so unknown ids never get a lock
        self._accounts.get_account(account_id, owner_id)

        with self._locks.hold(account_id), self._categories.reading():
            self._accounts.get_account(account_id, owner_id)
            category = self._categories.get_category(category_id)

            kind = parse_kind(kind)
            magnitude = require_positive(amount, "Transaction amount")
            if category.kind is not kind:
                raise ValidationError(
                    f"Transaction kind '{kind.value}' does not match category "
                    f"'{category.name}' of kind '{category.kind.value}'"
                )
            transaction_date = require_date(transaction_date, "Transaction date")

            transaction = Transaction(
                account_id=account_id,
                category_id=category_id,
                amount=magnitude * kind.sign,
                transaction_date=transaction_date,
                description=(description or "").strip(),
                kind=kind,
            )

            self._store.put(owner_id, transaction)
            try:
                account = self._accounts.adjust_balance(account_id, owner_id, transaction.amount)
            except Exception:
                self._store.delete(owner_id, transaction.id)
                raise

        self._logger.info(
            "transaction_created",
            transaction_id=str(transaction.id),
            account_id=str(account_id),
            amount=str(transaction.amount),
            balance=str(account.balance),
        )
        return transaction

    def update_transaction(
        self,
        transaction_id: UUID,
        owner_id: UUID,
        account_id: UUID,
        category_id: UUID,
        amount: Decimal | int | str,
        transaction_date: date,
        description: str,
    ) -> Transaction:
        """
        Rewrite a transaction, possibly moving it to another account.

        The old effect is reversed on the old account and the new effect
        applied on the new account. Kind cannot change; the new category
        must have the same kind as the transaction. The sign of amount is
        ignored, only its magnitude is used.

        Raises:
            NotFoundError: Unknown transaction, account or category
            AuthorizationError: New account belongs to another owner
            ValidationError: Kind mismatch or zero amount
        """
        self._accounts.get_account(account_id, owner_id)

        while True:
            current = self.get_transaction(transaction_id, owner_id)

            with self._locks.hold(current.account_id, account_id), self._categories.reading():
                existing = self._store.get(owner_id, transaction_id)
                if existing is None:
                    raise NotFoundError(
                        f"Transaction with ID {transaction_id} not found for user {owner_id}"
                    )
                if existing.account_id != current.account_id:
                    # Moved by a concurrent update before we got the lock
                    continue

                return self._apply_update(
                    existing, owner_id, account_id, category_id,
                    amount, transaction_date, description,
                )

    def _apply_update(
        self,
        existing: Transaction,
        owner_id: UUID,
        account_id: UUID,
        category_id: UUID,
        amount: Decimal | int | str,
        transaction_date: date,
        description: str,
    ) -> Transaction:
        """Body of update_transaction; caller holds both account locks."""
        old_account = self._accounts.get_account(existing.account_id, owner_id)
        new_account = self._accounts.get_account(account_id, owner_id)
        category = self._categories.get_category(category_id)

        if category.kind is not existing.kind:
            raise ValidationError(
                f"New category '{category.name}' of kind '{category.kind.value}' does not "
                f"match existing transaction kind '{existing.kind.value}'"
            )
        magnitude = abs(to_decimal(amount, "Transaction amount"))
        if magnitude == 0:
            raise ValidationError("Transaction amount must be non-zero")
        transaction_date = require_date(transaction_date, "Transaction date")

        updated = existing.model_copy(
            update={
                "account_id": account_id,
                "category_id": category_id,
                "amount": magnitude * existing.kind.sign,
                "transaction_date": transaction_date,
                "description": (description or "").strip(),
            }
        )

        try:
            self._accounts.adjust_balance(old_account.id, owner_id, -existing.amount)
            self._accounts.adjust_balance(new_account.id, owner_id, updated.amount)
            self._store.put(owner_id, updated)
        except Exception:
            self._logger.error(
                "transaction_update_rolled_back",
                transaction_id=str(existing.id),
            )
            self._accounts.set_balance(old_account.id, owner_id, old_account.balance)
            self._accounts.set_balance(new_account.id, owner_id, new_account.balance)
            raise

        self._logger.info(
            "transaction_updated",
            transaction_id=str(existing.id),
            old_account_id=str(old_account.id),
            new_account_id=str(new_account.id),
            old_amount=str(existing.amount),
            new_amount=str(updated.amount),
        )
        return updated

    def delete_transaction(self, transaction_id: UUID, owner_id: UUID) -> None:
        """
        Remove a transaction and reverse its effect on the account balance.

        Raises:
            NotFoundError: Unknown transaction
        """
        while True:
            current = self.get_transaction(transaction_id, owner_id)

            with self._locks.hold(current.account_id):
                existing = self._store.get(owner_id, transaction_id)
                if existing is None:
                    raise NotFoundError(
                        f"Transaction with ID {transaction_id} not found for user {owner_id}"
                    )
                if existing.account_id != current.account_id:
                    continue

                account = self._accounts.get_account(existing.account_id, owner_id)
                self._accounts.adjust_balance(account.id, owner_id, -existing.amount)
                try:
                    self._store.delete(owner_id, transaction_id)
                except Exception:
                    self._accounts.set_balance(account.id, owner_id, account.balance)
                    raise
                break

        self._logger.info(
            "transaction_deleted",
            transaction_id=str(transaction_id),
            account_id=str(existing.account_id),
            reversed_amount=str(-existing.amount),
        )
