"""
Database connection and session management.
"""
from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from numeracy.db.models import Base


def create_db_engine(database_url: str, *, echo: bool = False) -> Engine:
    """
    Create an engine for `database_url`.

    In-memory SQLite URLs share one connection across sessions, otherwise
    every session would see its own empty database.
    """
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, echo=echo, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables initialized")


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:  # Rollback on any error before re-raising
        session.rollback()
        raise
    finally:
        session.close()
