"""
labelsync.services.ledger_service — Association Ledger
=======================================================

Durable record of which likes currently justify which label on which
account.  This is what makes removals reversible: when a like is deleted we
only get its path back from the firehose, so the ledger is the only place
that remembers which label it had granted.

Invariants:
    * One row per ``(account, like_path)`` — enforced by a unique constraint,
      inserts are insert-if-absent.
    * Several rows may share ``(account, label)``; the label is revoked only
      once the last of them is gone.

All methods are synchronous — call via ``await run_db(ledger.method, ...)``.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, func, select
from sqlalchemy.exc import IntegrityError

from labelsync.database.engine import get_session
from labelsync.database.models import ActiveAssociation

logger = logging.getLogger(__name__)


class AssociationLedger:
    """Insert/delete by natural key; no locks, no read-modify-write."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def record_active(
        self,
        account: str,
        like_path: str,
        target_post_uri: str,
        label: str,
    ) -> bool:
        """Record that *account*'s like at *like_path* justifies *label*.

        Returns True if a row was inserted, False if it already existed.
        """
        try:
            with get_session(self.engine) as session:
                session.add(ActiveAssociation(
                    account=account,
                    like_path=like_path,
                    target_post_uri=target_post_uri,
                    label=label,
                ))
                session.flush()
        except IntegrityError:
            logger.debug(
                "Association already recorded: account=%s like=%s",
                account, like_path,
            )
            return False
        logger.info("Recorded %s for %s (%s)", label, account, like_path)
        return True

    def remove_by_like_path(self, account: str, like_path: str) -> set[str]:
        """Delete every row for ``(account, like_path)``.

        Returns the distinct labels those rows carried — normally one, empty
        if the like was never recorded (e.g. it liked a non-label post).
        """
        with get_session(self.engine) as session:
            labels = set(session.scalars(
                select(ActiveAssociation.label).where(
                    ActiveAssociation.account == account,
                    ActiveAssociation.like_path == like_path,
                )
            ).all())
            if not labels:
                return set()
            result = session.execute(
                delete(ActiveAssociation).where(
                    ActiveAssociation.account == account,
                    ActiveAssociation.like_path == like_path,
                )
            )
        logger.info(
            "Deleted %d association(s) for %s (%s): %s",
            result.rowcount, account, like_path, sorted(labels),
        )
        return labels

    def has_other_active_with_label(self, account: str, label: str) -> bool:
        """True if *account* still has an active like justifying *label*."""
        with get_session(self.engine) as session:
            count = session.scalar(
                select(func.count())
                .select_from(ActiveAssociation)
                .where(
                    ActiveAssociation.account == account,
                    ActiveAssociation.label == label,
                )
            )
        return bool(count)
