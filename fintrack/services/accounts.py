"""
Account Store

Per-user account registry and keeper of account balances.

CRITICAL: The balance is moved only through adjust_balance(), and only
the transaction ledger calls it, while holding the account's lock.
Deletion takes the same lock, so an account cannot disappear between a
transaction write and its balance delta.
"""

from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID

from fintrack.errors import AuthorizationError, NotFoundError, ValidationError
from fintrack.log import get_logger
from fintrack.models import Account
from fintrack.services.locks import AccountLocks
from fintrack.services.storage import PartitionStore
from fintrack.services.users import UserDirectory
from fintrack.validation import require_non_negative, require_text


UsageProbe = Callable[[UUID, UUID], bool]


class AccountStore:
    """Owner-scoped CRUD for accounts plus the balance adjustment hook."""
    
    def __init__(
        self,
        store: PartitionStore[Account],
        users: UserDirectory,
        locks: Optional[AccountLocks] = None,
    ):
        self._store = store
        self._users = users
        self._locks = locks or AccountLocks()
        self._usage_probes: list[UsageProbe] = []
        self._logger = get_logger(__name__)
    
    def register_usage_probe(self, probe: UsageProbe) -> None:
        """Add a callable answering "does (account_id, owner_id) still have transactions?"."""
        self._usage_probes.append(probe)
    
    @property
    def locks(self) -> AccountLocks:
        return self._locks
    
    def create_account(
        self,
        owner_id: UUID,
        name: str,
        initial_balance: Decimal | int | str,
        type: str,
    ) -> Account:
        """
        Open a new account for a user.
        
        Raises:
            NotFoundError: Unknown owner
            ValidationError: Blank name or type, negative initial balance
        """
        self._users.require(owner_id)
        name = require_text(name, "Account name")
        balance = require_non_negative(initial_balance, "Initial balance")
        account_type = require_text(type, "Account type")
        
        account = Account(
            owner_id=owner_id,
            name=name,
            type=account_type,
            balance=balance,
            opening_balance=balance,
        )
        self._store.put(owner_id, account)
        
        self._logger.info(
            "account_created",
            account_id=str(account.id),
            owner_id=str(owner_id),
            balance=str(balance),
        )
        return account
    
    def get_account(self, account_id: UUID, owner_id: UUID) -> Account:
        """
        Look up an account in the owner's partition.
        
        Raises:
            NotFoundError: Unknown owner or no such account for this owner
            AuthorizationError: Row resolved but belongs to someone else
        """
        self._users.require(owner_id)
        account = self._store.get(owner_id, account_id)
        if account is None:
            raise NotFoundError(
                f"Account with ID {account_id} not found for user {owner_id}"
            )
        if account.owner_id != owner_id:
            raise AuthorizationError(
                f"User {owner_id} is not authorized to access account {account_id}"
            )
        return account
    
    def list_accounts(self, owner_id: UUID) -> list[Account]:
        self._users.require(owner_id)
        return self._store.list_rows(owner_id)
    
    def update_account(
        self,
        account_id: UUID,
        owner_id: UUID,
        name: str,
        type: str,
        active: bool,
    ) -> Account:
        """Change an account's descriptive fields. The balance is untouched."""
        name = require_text(name, "Account name")
        account_type = require_text(type, "Account type")
        
        self.get_account(account_id, owner_id)
        with self._locks.hold(account_id):
            account = self.get_account(account_id, owner_id)
            updated = account.model_copy(
                update={"name": name, "type": account_type, "active": bool(active)}
            )
            self._store.put(owner_id, updated)
        
        self._logger.info(
            "account_updated",
            account_id=str(account_id),
            owner_id=str(owner_id),
            active=updated.active,
        )
        return updated
    
    def delete_account(self, account_id: UUID, owner_id: UUID) -> None:
        """
        Delete an account whose balance is exactly zero.
        
        Transactions must be removed first; an account that still has
        live transactions is refused even when they net to zero.
        
        Raises:
            NotFoundError: No such account for this owner
            ValidationError: Balance is not zero, or transactions remain
        """
        self.get_account(account_id, owner_id)
        
        with self._locks.hold(account_id):
            account = self.get_account(account_id, owner_id)
            if account.balance != 0:
                self._logger.warning(
                    "account_delete_rejected",
                    account_id=str(account_id),
                    balance=str(account.balance),
                )
                raise ValidationError(
                    f"Cannot delete account with non-zero balance. Balance: {account.balance}"
                )
            if any(probe(account_id, owner_id) for probe in self._usage_probes):
                raise ValidationError(
                    f"Cannot delete account {account_id} while transactions still reference it"
                )
            self._store.delete(owner_id, account_id)
        
        self._locks.discard(account_id)
        self._logger.info(
            "account_deleted",
            account_id=str(account_id),
            owner_id=str(owner_id),
        )
    
    def adjust_balance(self, account_id: UUID, owner_id: UUID, delta: Decimal) -> Account:
        """
        Add a signed delta to an account's balance.
        
        Internal: called by the transaction ledger only, inside its
        critical section for this account.
        """
        with self._locks.hold(account_id):
            account = self.get_account(account_id, owner_id)
            updated = account.model_copy(update={"balance": account.balance + delta})
            self._store.put(owner_id, updated)
        return updated
    
    def set_balance(self, account_id: UUID, owner_id: UUID, balance: Decimal) -> None:
        """Restore a previously read balance. Used to undo a partial write."""
        with self._locks.hold(account_id):
            account = self.get_account(account_id, owner_id)
            self._store.put(owner_id, account.model_copy(update={"balance": balance}))
