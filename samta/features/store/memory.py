"""
samta/features/store/memory.py

In-memory match store plus store selection.

The in-memory store is the default when no DATABASE_URL is configured; it
stands in for the browser local storage the web client used.
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from samta.core.errors import (
    ConflictError,
    InterestAlreadyExistsError,
    InterestNotFoundError,
    UserNotFoundError,
)
from samta.models.audit import AuditLogEntry
from samta.models.interest import Interest, pair_key
from samta.models.message import Message
from samta.models.user import User

logger = logging.getLogger(__name__)


class InMemoryMatchStore:
    """
    Dict-backed store.

    A single re-entrant lock serializes transactions. The outermost
    transaction snapshots all tables and restores them if the block raises.
    Records are frozen models, so shallow copies are enough for the snapshot.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._depth = 0
        self._users: Dict[str, User] = {}
        self._interests: Dict[str, Interest] = {}
        self._pairs: Dict[str, str] = {}
        self._messages: List[Message] = []
        self._audit: List[AuditLogEntry] = []

    def _snapshot(self):
        return (
            dict(self._users),
            dict(self._interests),
            dict(self._pairs),
            list(self._messages),
            list(self._audit),
        )

    def _restore(self, snapshot) -> None:
        self._users, self._interests, self._pairs, self._messages, self._audit = snapshot

    @contextmanager
    def transaction(self) -> Iterator["InMemoryMatchStore"]:
        with self._lock:
            outermost = self._depth == 0
            snapshot = self._snapshot() if outermost else None
            self._depth += 1
            try:
                yield self
            except BaseException:
                if outermost:
                    self._restore(snapshot)
                raise
            finally:
                self._depth -= 1

    # Users

    def get_user(self, user_id: str, *, for_update: bool = False) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def add_user(self, user: User) -> User:
        with self._lock:
            if user.user_id in self._users:
                raise ConflictError(f"User already exists: {user.user_id}")
            self._users[user.user_id] = user
            return user

    def save_user(self, user: User) -> User:
        with self._lock:
            if user.user_id not in self._users:
                raise UserNotFoundError(user.user_id)
            self._users[user.user_id] = user
            return user

    def list_users(self) -> List[User]:
        with self._lock:
            return sorted(self._users.values(), key=lambda u: u.created_at)

    # Interests

    def get_interest(self, interest_id: str) -> Optional[Interest]:
        with self._lock:
            return self._interests.get(interest_id)

    def find_interest_between(self, user_a: str, user_b: str) -> Optional[Interest]:
        with self._lock:
            interest_id = self._pairs.get(pair_key(user_a, user_b))
            return self._interests.get(interest_id) if interest_id else None

    def add_interest(self, interest: Interest) -> Interest:
        with self._lock:
            key = interest.pair_key
            if key in self._pairs:
                raise InterestAlreadyExistsError(
                    "Interest already exists between these users"
                )
            self._interests[interest.interest_id] = interest
            self._pairs[key] = interest.interest_id
            return interest

    def save_interest(self, interest: Interest) -> Interest:
        with self._lock:
            if interest.interest_id not in self._interests:
                raise InterestNotFoundError(interest.interest_id)
            self._interests[interest.interest_id] = interest
            return interest

    def list_interests(self, user_id: Optional[str] = None) -> List[Interest]:
        with self._lock:
            items = [
                i for i in self._interests.values()
                if user_id is None or i.involves(user_id)
            ]
        # sorted() is stable: equal timestamps keep insertion order
        return sorted(items, key=lambda i: i.created_at)

    # Messages

    def add_message(self, message: Message) -> Message:
        with self._lock:
            self._messages.append(message)
            return message

    def list_messages(self, conversation_id: Optional[str] = None) -> List[Message]:
        with self._lock:
            items = [
                m for m in self._messages
                if conversation_id is None or m.conversation_id == conversation_id
            ]
        return sorted(items, key=lambda m: m.created_at)

    # Admin audit trail

    def add_audit_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        with self._lock:
            self._audit.append(entry)
            return entry

    def list_audit_entries(self, limit: int = 100) -> List[AuditLogEntry]:
        with self._lock:
            newest_first = list(reversed(self._audit))
        return newest_first[:limit]

    def clear(self) -> None:
        with self._lock:
            self._users.clear()
            self._interests.clear()
            self._pairs.clear()
            self._messages.clear()
            self._audit.clear()


# ============================================================================
# Store selection
# ============================================================================

def get_match_store():
    """
    Build the store implementation for the current configuration.

    - SQL store when DATABASE_URL (or TEST_DATABASE_URL) is set and reachable
    - In-memory store otherwise
    """
    from samta.core.database import get_database_url

    database_url = os.getenv("TEST_DATABASE_URL") or os.getenv("DATABASE_URL") or get_database_url()

    if database_url:
        try:
            from samta.features.store.sql import SqlMatchStore
            from samta.core.database import build_engine, check_connection

            engine = build_engine(database_url)
            if check_connection(engine):
                store = SqlMatchStore(engine=engine)
                store.create_schema()
                return store
            logger.warning("[store] database unavailable, falling back to in-memory")
        except Exception as e:
            logger.warning(f"[store] failed to initialize SQL store: {e}; falling back to in-memory")

    return InMemoryMatchStore()


# Global store instance (lazy initialization)
_store_instance = None


def get_store():
    """
    Get the process-wide store instance.

    This is what the HTTP layer injects into services.
    """
    global _store_instance
    if _store_instance is None:
        _store_instance = get_match_store()
    return _store_instance


def set_store(store) -> None:
    """Install a specific store instance (tests, scripts)."""
    global _store_instance
    _store_instance = store


def reset_store():
    """
    Reset the store instance.

    FOR TESTING ONLY - forces re-initialization on next get_store() call.
    """
    global _store_instance
    _store_instance = None
