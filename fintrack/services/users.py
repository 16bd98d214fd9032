"""
User Directory

DESIGN DECISION: One directory answers "does this user exist?" for every
component. Identity and authentication happen before a call reaches the
ledger; the directory only records which owner ids are known.
"""

import threading
from uuid import UUID

from fintrack.errors import NotFoundError


class UserDirectory:
    """Shared set of known user ids."""
    
    def __init__(self):
        self._users: set[UUID] = set()
        self._lock = threading.Lock()
    
    def register(self, user_id: UUID) -> None:
        with self._lock:
            self._users.add(user_id)
    
    def remove(self, user_id: UUID) -> None:
        with self._lock:
            self._users.discard(user_id)
    
    def exists(self, user_id: UUID) -> bool:
        return user_id in self._users
    
    def require(self, user_id: UUID) -> None:
        """Raise NotFoundError unless the user is known."""
        if not self.exists(user_id):
            raise NotFoundError(f"User with ID {user_id} not found")
