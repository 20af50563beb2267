"""Database connection and session management for Network Token Service."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

# Base class for all ORM models
Base = declarative_base()


def create_db_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a SQLAlchemy engine with connection pooling.

    SQLite URLs (used by tests and local development) get a single shared
    connection for in-memory databases; PostgreSQL gets a pooled engine
    with UTC timezone and a statement timeout.

    Args:
        database_url: Database connection URL
        echo: Log SQL statements

    Returns:
        Configured SQLAlchemy engine
    """
    if database_url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=echo, **kwargs)

    engine = create_engine(
        database_url,
        pool_size=10,  # Number of connections to keep open
        max_overflow=20,  # Additional connections when pool is full
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,  # Recycle connections after 1 hour
        echo=echo,
    )

    @event.listens_for(engine, "connect")
    def set_postgresql_pragma(dbapi_conn, connection_record):  # type: ignore
        cursor = dbapi_conn.cursor()
        cursor.execute("SET timezone='UTC'")
        cursor.execute("SET statement_timeout='30000'")  # 30 second timeout
        cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create a session factory bound to the given engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with session_scope(factory) as session:
            session.query(CredentialRecordModel).filter_by(payment_token_id='pc_123').first()

    Automatically commits on success, rolls back on exception.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """
    Initialize database schema (create all tables).

    WARNING: Intended for tests and local development.

    Args:
        engine: Engine to create tables on
    """
    # Import models so they are registered on Base.metadata
    from network_token.infrastructure import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def drop_all_tables(engine: Engine) -> None:
    """
    Drop all tables in the database.

    WARNING: This is destructive and should only be used for testing.
    """
    Base.metadata.drop_all(bind=engine)
