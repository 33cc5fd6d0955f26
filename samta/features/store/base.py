"""
samta/features/store/base.py

Persistence contract shared by the in-memory and SQL stores.

Services receive a store handle explicitly and run every mutating operation
inside `store.transaction()`. Inside a transaction the checks and writes of one
operation are isolated from other transactions, and either all writes land or
none do.
"""

from contextlib import AbstractContextManager
from typing import List, Optional, Protocol, runtime_checkable

from samta.models.audit import AuditLogEntry
from samta.models.interest import Interest
from samta.models.message import Message
from samta.models.user import User


@runtime_checkable
class MatchStore(Protocol):
    def transaction(self) -> AbstractContextManager["MatchStore"]:
        """Open (or join) a unit of work; yields the store itself."""
        ...

    # Users
    def get_user(self, user_id: str, *, for_update: bool = False) -> Optional[User]: ...

    def add_user(self, user: User) -> User:
        """Insert a new user. Raises ConflictError if the id is taken."""
        ...

    def save_user(self, user: User) -> User:
        """Replace an existing user by id. Raises UserNotFoundError."""
        ...

    def list_users(self) -> List[User]: ...

    # Interests
    def get_interest(self, interest_id: str) -> Optional[Interest]: ...

    def find_interest_between(self, user_a: str, user_b: str) -> Optional[Interest]: ...

    def add_interest(self, interest: Interest) -> Interest:
        """Insert a new interest. Raises InterestAlreadyExistsError if the pair is taken."""
        ...

    def save_interest(self, interest: Interest) -> Interest:
        """Replace an existing interest by id. Raises InterestNotFoundError."""
        ...

    def list_interests(self, user_id: Optional[str] = None) -> List[Interest]:
        """Interests (optionally involving `user_id`) by creation time, oldest first."""
        ...

    # Messages
    def add_message(self, message: Message) -> Message: ...

    def list_messages(self, conversation_id: Optional[str] = None) -> List[Message]:
        """Messages (optionally of one conversation) by creation time, oldest first."""
        ...

    # Admin audit trail
    def add_audit_entry(self, entry: AuditLogEntry) -> AuditLogEntry: ...

    def list_audit_entries(self, limit: int = 100) -> List[AuditLogEntry]:
        """Most recent first."""
        ...

    def clear(self) -> None:
        """Remove all records (for testing)"""
        ...
