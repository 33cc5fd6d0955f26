"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults
- Test database support (SQLite in-memory)
- Table definitions for users, interests, messages and the admin audit trail
"""
from typing import Optional
from contextlib import contextmanager
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, JSON, Text, Index, ForeignKey, UniqueConstraint, text
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func
import logging
import os

from samta.core.config import settings

logger = logging.getLogger(__name__)

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None


def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return settings.DATABASE_URL


def build_engine(url: str):
    """Create an engine for `url`; SQLite gets a single shared connection."""
    if url.startswith("sqlite"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=POOL_SIZE,
        max_overflow=MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT,
        pool_recycle=POOL_RECYCLE,
        echo=False,  # Set to True for SQL query logging
    )


def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    _engine = build_engine(url)

    # Create session factory
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine


def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine


def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


@contextmanager
def get_db_session(session_factory=None):
    """
    Context manager for database sessions.

    Commits on clean exit, rolls back on any exception.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = session_factory or get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables(engine=None):
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    eng = engine or get_engine()
    metadata.create_all(bind=eng)


def check_connection(engine=None) -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        eng = engine or get_engine()
        with eng.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False


# Users: identity, role and the entitlement snapshot
users = Table(
    'app_users',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('role', String(20), nullable=False, server_default='user'),
    Column('plan', String(20), nullable=False, server_default='Free'),
    Column('plan_expiry', DateTime(timezone=True), nullable=True),
    Column('interests_sent_count', Integer, nullable=False, server_default='0'),
    Column('status', String(20), nullable=False, server_default='active'),
    Column('moderation_status', String(20), nullable=False, server_default='pending'),
    Column('profile', JSON, nullable=False),
    Column('created_at', DateTime(timezone=True), server_default=func.now(), nullable=False),
    Index('idx_users_created_at', 'created_at'),
    Index('idx_users_status', 'status'),
)

# Interests: one row per unordered pair, enforced by pair_key
interests = Table(
    'interests',
    metadata,
    Column('interest_id', String(64), primary_key=True),
    Column('sender_id', String(100), ForeignKey('app_users.user_id'), nullable=False),
    Column('receiver_id', String(100), ForeignKey('app_users.user_id'), nullable=False),
    Column('pair_key', String(210), nullable=False),
    Column('status', String(20), nullable=False, server_default='pending'),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('resolved_at', DateTime(timezone=True), nullable=True),
    UniqueConstraint('pair_key', name='uq_interests_pair_key'),
    Index('idx_interests_sender', 'sender_id', 'created_at'),
    Index('idx_interests_receiver', 'receiver_id', 'created_at'),
)

# Messages: append-only chat log keyed by the governing interest
messages = Table(
    'messages',
    metadata,
    Column('message_id', String(64), primary_key=True),
    Column('conversation_id', String(64), ForeignKey('interests.interest_id'), nullable=False),
    Column('sender_id', String(100), ForeignKey('app_users.user_id'), nullable=False),
    Column('receiver_id', String(100), ForeignKey('app_users.user_id'), nullable=False),
    Column('text', Text, nullable=False),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Column('seq', Integer, nullable=False),
    Index('idx_messages_conversation_created', 'conversation_id', 'created_at', 'seq'),
)

# Admin audit trail
admin_audit = Table(
    'admin_audit',
    metadata,
    Column('audit_id', String(64), primary_key=True),
    Column('admin_id', String(100), nullable=False),
    Column('action', String(100), nullable=False),
    Column('target_id', String(100), nullable=False),
    Column('details', Text, nullable=False, server_default=''),
    Column('created_at', DateTime(timezone=True), nullable=False),
    Index('idx_admin_audit_created', 'created_at'),
)
