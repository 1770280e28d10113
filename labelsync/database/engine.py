"""
labelsync.database.engine — Engine, Sessions & the Thread Bridge
=================================================================

The store layer is plain synchronous SQLAlchemy (psycopg2 in production,
pysqlite in tests).  Everything above it is asyncio.  ``run_db`` is the one
crossing point: service methods stay synchronous and are shipped to the
default thread pool, so a slow query holds up one op task, never the
firehose consumer.

    engine = create_db_engine()                       # DATABASE_URL
    init_db(engine)
    added = await run_db(ledger.record_active, did, path, uri, "fox")
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from labelsync.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

# Op tasks each hold a connection for a single short statement, but many run
# at once during bursts of likes.
POOL_SIZE = 5
POOL_MAX_OVERFLOW = 10
POOL_TIMEOUT_S = 10
POOL_RECYCLE_S = 3600


def create_db_engine(url: str | None = None) -> Engine:
    """Build the shared :class:`Engine`.

    *url* defaults to the ``DATABASE_URL`` environment variable.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is unset.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and point it at the labelsync database."
        )

    engine = create_engine(
        url,
        pool_size=POOL_SIZE,
        max_overflow=POOL_MAX_OVERFLOW,
        pool_timeout=POOL_TIMEOUT_S,
        pool_recycle=POOL_RECYCLE_S,
        pool_pre_ping=True,
    )
    logger.info("Database engine ready → %s/%s", engine.url.host, engine.url.database)
    return engine


def init_db(engine: Engine) -> None:
    """Create any missing labelsync tables.

    Alembic owns the schema in production; this only fills the gap on a
    fresh dev database.
    """
    Base.metadata.create_all(engine)
    logger.info("post_labels / active_associations / checkpoints present.")


@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Session scope: commit when the block exits cleanly, else roll back."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await a synchronous store call on the default thread pool."""
    return await asyncio.to_thread(func, *args, **kwargs)
