# hrms/database.py
import logging
from typing import Awaitable, Callable, TypeVar

from sqlalchemy import event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from hrms.core.config import settings
from hrms.core.exceptions import HRMSError, TransactionAborted

logger = logging.getLogger("db")

T = TypeVar("T")

Base = declarative_base()  # base class for every ORM model


def _enable_sqlite_transactions(bind: AsyncEngine) -> None:
    # let SQLAlchemy own BEGIN so savepoints nest inside real transactions
    @event.listens_for(bind.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(bind.sync_engine, "begin")
    def _on_begin(conn):
        # take the write lock up front; a deferred BEGIN fails with SQLITE_BUSY
        # on lock upgrade instead of waiting out the busy timeout
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, echo: bool = False, pool_size: int = 10, **kwargs) -> AsyncEngine:
    if url.startswith("sqlite"):
        # SQLite has no server pool to bound
        bind = create_async_engine(url, echo=echo, **kwargs)
        _enable_sqlite_transactions(bind)
        return bind
    return create_async_engine(url, echo=echo, pool_size=pool_size, pool_pre_ping=True, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    # objects stay readable after commit so services can return them
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO, pool_size=settings.DB_POOL_SIZE)
SessionLocal = build_session_factory(engine)


def get_session_factory() -> async_sessionmaker:
    """FastAPI dependency; tests override it with an in-memory factory."""
    return SessionLocal


async def create_tables(bind: AsyncEngine) -> None:
    # import registers the models on Base.metadata
    from hrms.models import models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def run_in_transaction(
    session_factory: async_sessionmaker,
    work: Callable[[AsyncSession], Awaitable[T]],
) -> T:
    """
    Run `work` inside one transaction.

    Commits when `work` returns, rolls back when it raises. Domain errors
    propagate unchanged; storage failures surface as TransactionAborted.
    """
    async with session_factory() as session:
        try:
            async with session.begin():
                return await work(session)
        except HRMSError as e:
            logger.info(f"[DB] Rolled back: {type(e).__name__}: {e}")
            raise
        except SQLAlchemyError as e:
            logger.exception(f"[DB] Transaction aborted: {e}")
            raise TransactionAborted(f"Transaction aborted: {e}") from e
