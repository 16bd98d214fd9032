"""
Per-Account Locks

CRITICAL: Every (transaction write, balance delta) pair runs while the
account's lock is held, so no caller can observe a transaction without
its balance effect or the other way round.

Operations touching two accounts take both locks in ascending id order.
Two updates that swap the roles of the same pair of accounts therefore
request the locks in the same order and cannot deadlock.

Locks are re-entrant: the ledger holds an account's lock while calling
into the account store, which takes the same lock again.

SharedLock guards the category registry. Lock order is always account
locks first, then the registry lock."""

import threading
from contextlib import ExitStack, contextmanager
from typing import Iterator
from uuid import UUID


class AccountLocks:
    """Registry of one re-entrant lock per account id."""
    
    def __init__(self):
        self._locks: dict[UUID, threading.RLock] = {}
        self._guard = threading.Lock()
    
    def _lock_for(self, account_id: UUID) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[account_id] = lock
            return lock
    
    @contextmanager
    def hold(self, *account_ids: UUID) -> Iterator[None]:
        """Hold the locks of every given account, acquired in id order."""
        with ExitStack() as stack:
            for account_id in sorted(set(account_ids), key=str):
                stack.enter_context(self._lock_for(account_id))
            yield
    
    def discard(self, account_id: UUID) -> None:
        """Forget the lock of a deleted account."""
        with self._guard:
            self._locks.pop(account_id, None)
    
    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


class SharedLock:
    """
    Many readers or one writer.
    
    Readers are not blocked by waiting writers, so a thread that already
    reads may enter again. A thread must not ask to write while it reads.
    """
    
    def __init__(self):
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False
    
    @contextmanager
    def reading(self) -> Iterator[None]:
        with self._condition:
            while self._writing:
                self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._condition:
                self._readers -= 1
                if not self._readers:
                    self._condition.notify_all()
    
    @contextmanager
    def writing(self) -> Iterator[None]:
        with self._condition:
            while self._writing or self._readers:
                self._condition.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._condition:
                self._writing = False
                self._condition.notify_all()
