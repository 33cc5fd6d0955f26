"""
samta/features/store/sql.py

SQLAlchemy-backed match store.

Maintains the same contract as InMemoryMatchStore. A transaction is one
session; the UNIQUE constraint on interests.pair_key rejects a racing
duplicate proposal, and `get_user(..., for_update=True)` locks the sender row
so the quota check and the counter increment serialize.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Iterator, List, Optional

from sqlalchemy import func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from samta.core.database import (
    admin_audit,
    create_all_tables,
    get_db_session,
    get_engine,
    interests,
    messages,
    users,
)
from samta.core.errors import (
    ConflictError,
    InterestAlreadyExistsError,
    InterestNotFoundError,
    UserNotFoundError,
)
from samta.models.audit import AuditLogEntry
from samta.models.interest import Interest, InterestStatus, pair_key
from samta.models.message import Message
from samta.models.profile import Profile
from samta.models.user import (
    ModerationStatus,
    PlanType,
    Subscription,
    User,
    UserRole,
    UserStatus,
)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _user_from_row(row) -> User:
    return User(
        user_id=row.user_id,
        role=UserRole(row.role),
        subscription=Subscription(
            plan=PlanType(row.plan),
            expiry_date=_as_utc(row.plan_expiry),
            interests_sent_count=row.interests_sent_count,
        ),
        status=UserStatus(row.status),
        moderation_status=ModerationStatus(row.moderation_status),
        profile=Profile.model_validate(row.profile or {}),
        created_at=_as_utc(row.created_at),
    )


def _user_values(user: User) -> dict:
    return {
        "role": user.role.value,
        "plan": user.subscription.plan.value,
        "plan_expiry": user.subscription.expiry_date,
        "interests_sent_count": user.subscription.interests_sent_count,
        "status": user.status.value,
        "moderation_status": user.moderation_status.value,
        "profile": user.profile.model_dump(mode="json"),
    }


def _interest_from_row(row) -> Interest:
    return Interest(
        interest_id=row.interest_id,
        sender_id=row.sender_id,
        receiver_id=row.receiver_id,
        status=InterestStatus(row.status),
        created_at=_as_utc(row.created_at),
        resolved_at=_as_utc(row.resolved_at),
    )


def _message_from_row(row) -> Message:
    return Message(
        message_id=row.message_id,
        sender_id=row.sender_id,
        receiver_id=row.receiver_id,
        conversation_id=row.conversation_id,
        text=row.text,
        created_at=_as_utc(row.created_at),
    )


def _audit_from_row(row) -> AuditLogEntry:
    return AuditLogEntry(
        audit_id=row.audit_id,
        admin_id=row.admin_id,
        action=row.action,
        target_id=row.target_id,
        details=row.details or "",
        created_at=_as_utc(row.created_at),
    )


class SqlMatchStore:
    """
    Database-backed match store.

    Provides the same interface as the in-memory store but with durability.
    """

    def __init__(self, engine=None):
        self._engine = engine or get_engine()
        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
        self._current: ContextVar = ContextVar(f"samta_sql_session_{id(self)}", default=None)

    @property
    def engine(self):
        return self._engine

    def create_schema(self) -> None:
        create_all_tables(self._engine)

    @contextmanager
    def transaction(self) -> Iterator["SqlMatchStore"]:
        if self._current.get() is not None:
            # Nested: join the outer session
            yield self
            return
        with get_db_session(self._session_factory) as session:
            token = self._current.set(session)
            try:
                yield self
            finally:
                self._current.reset(token)

    @contextmanager
    def _session(self):
        current = self._current.get()
        if current is not None:
            yield current
            return
        with get_db_session(self._session_factory) as session:
            yield session

    # Users

    def get_user(self, user_id: str, *, for_update: bool = False) -> Optional[User]:
        stmt = select(users).where(users.c.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        with self._session() as session:
            row = session.execute(stmt).first()
            return _user_from_row(row) if row else None

    def add_user(self, user: User) -> User:
        with self._session() as session:
            exists = session.execute(
                select(users.c.user_id).where(users.c.user_id == user.user_id)
            ).first()
            if exists:
                raise ConflictError(f"User already exists: {user.user_id}")
            try:
                session.execute(
                    insert(users).values(
                        user_id=user.user_id,
                        created_at=user.created_at,
                        **_user_values(user),
                    )
                )
            except IntegrityError:
                raise ConflictError(f"User already exists: {user.user_id}")
        return user

    def save_user(self, user: User) -> User:
        with self._session() as session:
            result = session.execute(
                update(users).where(users.c.user_id == user.user_id).values(**_user_values(user))
            )
            if result.rowcount == 0:
                raise UserNotFoundError(user.user_id)
        return user

    def list_users(self) -> List[User]:
        with self._session() as session:
            rows = session.execute(select(users).order_by(users.c.created_at)).all()
            return [_user_from_row(r) for r in rows]

    # Interests

    def get_interest(self, interest_id: str) -> Optional[Interest]:
        with self._session() as session:
            row = session.execute(
                select(interests).where(interests.c.interest_id == interest_id)
            ).first()
            return _interest_from_row(row) if row else None

    def find_interest_between(self, user_a: str, user_b: str) -> Optional[Interest]:
        with self._session() as session:
            row = session.execute(
                select(interests).where(interests.c.pair_key == pair_key(user_a, user_b))
            ).first()
            return _interest_from_row(row) if row else None

    def add_interest(self, interest: Interest) -> Interest:
        with self._session() as session:
            try:
                session.execute(
                    insert(interests).values(
                        interest_id=interest.interest_id,
                        sender_id=interest.sender_id,
                        receiver_id=interest.receiver_id,
                        pair_key=interest.pair_key,
                        status=interest.status.value,
                        created_at=interest.created_at,
                        resolved_at=interest.resolved_at,
                    )
                )
            except IntegrityError:
                raise InterestAlreadyExistsError("Interest already exists between these users")
        return interest

    def save_interest(self, interest: Interest) -> Interest:
        with self._session() as session:
            result = session.execute(
                update(interests)
                .where(interests.c.interest_id == interest.interest_id)
                .values(status=interest.status.value, resolved_at=interest.resolved_at)
            )
            if result.rowcount == 0:
                raise InterestNotFoundError(interest.interest_id)
        return interest

    def list_interests(self, user_id: Optional[str] = None) -> List[Interest]:
        stmt = select(interests)
        if user_id is not None:
            stmt = stmt.where(
                or_(interests.c.sender_id == user_id, interests.c.receiver_id == user_id)
            )
        stmt = stmt.order_by(interests.c.created_at)
        with self._session() as session:
            return [_interest_from_row(r) for r in session.execute(stmt).all()]

    # Messages

    def add_message(self, message: Message) -> Message:
        with self._session() as session:
            next_seq = session.execute(
                select(func.coalesce(func.max(messages.c.seq), 0))
            ).scalar_one() + 1
            session.execute(
                insert(messages).values(
                    message_id=message.message_id,
                    conversation_id=message.conversation_id,
                    sender_id=message.sender_id,
                    receiver_id=message.receiver_id,
                    text=message.text,
                    created_at=message.created_at,
                    seq=next_seq,
                )
            )
        return message

    def list_messages(self, conversation_id: Optional[str] = None) -> List[Message]:
        stmt = select(messages)
        if conversation_id is not None:
            stmt = stmt.where(messages.c.conversation_id == conversation_id)
        stmt = stmt.order_by(messages.c.created_at, messages.c.seq)
        with self._session() as session:
            return [_message_from_row(r) for r in session.execute(stmt).all()]

    # Admin audit trail

    def add_audit_entry(self, entry: AuditLogEntry) -> AuditLogEntry:
        with self._session() as session:
            session.execute(insert(admin_audit).values(**entry.model_dump()))
        return entry

    def list_audit_entries(self, limit: int = 100) -> List[AuditLogEntry]:
        stmt = select(admin_audit).order_by(admin_audit.c.created_at.desc()).limit(limit)
        with self._session() as session:
            return [_audit_from_row(r) for r in session.execute(stmt).all()]

    def clear(self) -> None:
        with self._session() as session:
            for table in (messages, interests, admin_audit, users):
                session.execute(table.delete())
