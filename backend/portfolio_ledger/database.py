# backend/portfolio_ledger/database.py
"""
Database engine, session factory and unit of work.

This module configures SQLAlchemy with:
- Connection pooling for production performance
- Environment-aware settings (SQLite StaticPool in test mode)
- Health check capabilities
- UnitOfWork: the atomic boundary for every ledger mutation

Nothing here is created at import time. The application factory builds
one engine and one session factory from Settings and hands them to the
service container.

Unit of work call shapes:

    # Owned: begin, commit on success, rollback on error, close
    with UnitOfWork.owned(session_factory) as uow:
        processor.add_transaction_in(uow, request)

    # Caller-supplied: the caller owns the commit boundary; services
    # receiving a uow only flush and never open a nested transaction
    def import_rows(uow: UnitOfWork, rows):
        for row in rows:
            processor.add_transaction_in(uow, row, skip_validation=True)
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Select, create_engine, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from portfolio_ledger.config import Settings
from portfolio_ledger.models import Portfolio

logger = logging.getLogger(__name__)


def create_db_engine(settings: Settings) -> Engine:
    """
    Create SQLAlchemy engine with environment-appropriate configuration.

    - SQLite: StaticPool so an in-memory database is shared by every session
    - PostgreSQL: QueuePool with configurable connection pooling
    """
    if settings.is_sqlite:
        logger.info("Configuring SQLite database")
        return create_engine(
            settings.database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.debug,
        )

    logger.info(
        f"Configuring PostgreSQL database pool: "
        f"size={settings.db_pool_size}, "
        f"max_overflow={settings.db_pool_max_overflow}, "
        f"recycle={settings.db_pool_recycle}s, "
        f"pre_ping={settings.db_pool_pre_ping}"
    )

    return create_engine(
        settings.database_url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_timeout=30,
        echo=settings.debug,
    )


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def check_database_health(engine: Engine) -> dict:
    """
    Check database connectivity.

    Returns:
        dict: {"status": "healthy"|"unhealthy", ...}
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "healthy", "database": engine.dialect.name}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}


# =============================================================================
# UNIT OF WORK
# =============================================================================

def portfolio_lock_statement(portfolio_id: int) -> Select:
    """Row-locking read of one portfolio; the lock every ledger writer takes."""
    return select(Portfolio).where(Portfolio.id == portfolio_id).with_for_update()


class UnitOfWork:
    """
    An atomic group of reads and writes sharing one Session.

    Services that accept a UnitOfWork flush their changes but never commit,
    roll back or close it. Only UnitOfWork.owned() decides the outcome.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    @classmethod
    @contextmanager
    def owned(cls, session_factory: sessionmaker[Session]) -> Iterator["UnitOfWork"]:
        """Open a session, commit if the block succeeds, roll back if it raises."""
        session = session_factory()
        uow = cls(session)
        try:
            yield uow
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def flush(self) -> None:
        self.session.flush()

    def lock_portfolio(self, portfolio_id: int) -> Portfolio | None:
        """
        Read the portfolio row with SELECT ... FOR UPDATE.

        Every mutator of the same portfolio takes this lock first, so cash
        and share checks never see a balance another writer is changing.
        SQLite ignores the clause; its writers are serialized by the
        database file lock instead.
        """
        return self.session.scalars(portfolio_lock_statement(portfolio_id)).first()
