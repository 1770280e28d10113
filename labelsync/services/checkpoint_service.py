"""
labelsync.services.checkpoint_service — Firehose Cursor History
================================================================

Append-only log of firehose cursors.  The newest row (by ``observed_at``)
is where the next run resumes; older rows are kept as history.

All methods are synchronous — call via ``await run_db(store.method, ...)``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import Engine, select
from sqlalchemy.exc import SQLAlchemyError

from labelsync.database.engine import get_session
from labelsync.database.models import Checkpoint
from labelsync.errors import StoreWriteFailure

logger = logging.getLogger(__name__)


class CheckpointStore:
    """Persists and retrieves the last acknowledged stream position."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def load_latest(self) -> str | None:
        """Return the most recently observed cursor, or ``None`` if empty."""
        with get_session(self.engine) as session:
            row = session.scalars(
                select(Checkpoint)
                .order_by(Checkpoint.observed_at.desc(), Checkpoint.id.desc())
                .limit(1)
            ).first()
            if row is None:
                logger.info("No known last checkpoint, starting from the relay default.")
                return None
            logger.info(
                "Last checkpoint added at %s at cursor: %s",
                row.observed_at, row.cursor,
            )
            return row.cursor

    def save(self, cursor: str, observed_at: datetime | None = None) -> None:
        """Append a checkpoint row.

        Raises
        ------
        StoreWriteFailure
            If the insert fails.  The caller keeps its in-memory cursor and
            retries on the next tick.
        """
        ts = observed_at or datetime.now(UTC)
        try:
            with get_session(self.engine) as session:
                session.add(Checkpoint(cursor=cursor, observed_at=ts))
        except SQLAlchemyError as exc:
            raise StoreWriteFailure(f"checkpoint write failed for cursor {cursor}") from exc
        logger.debug("Checkpoint saved: cursor=%s", cursor)
