"""
labelsync.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- post_labels          — Post → label cache (one row per post)
- active_associations  — Likes that currently justify a label on an account
- checkpoints          — Append-only firehose cursor history

No foreign keys: uniqueness on natural keys is the only integrity rule, and
every write path is idempotent on that key.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all labelsync ORM models."""


# ---------------------------------------------------------------------------
# PostLabel — one row per curated post, immutable once written
# ---------------------------------------------------------------------------
class PostLabel(Base):
    """Cached result of resolving a curated post into a label.

    ``post_id`` is the record key of the post (last segment of its AT URI).
    """
    __tablename__ = "post_labels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[str] = mapped_column(String(255), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_meta: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("post_id", name="uq_post_labels_post_id"),
        Index("ix_post_labels_label", "label"),
    )

    def __repr__(self) -> str:
        return f"<PostLabel post={self.post_id!r} label={self.label!r}>"


# ---------------------------------------------------------------------------
# ActiveAssociation — ledger of likes currently holding a label
# ---------------------------------------------------------------------------
class ActiveAssociation(Base):
    """An account's like of a curated post, and the label it justifies.

    Keyed by ``(account, like_path)``.  An account may hold several rows with
    the same ``label``; the label is only revoked when the last one goes.
    """
    __tablename__ = "active_associations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account: Mapped[str] = mapped_column(String(255), nullable=False)
    like_path: Mapped[str] = mapped_column(String(255), nullable=False)
    target_post_uri: Mapped[str] = mapped_column(String(512), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("account", "like_path", name="uq_active_assoc_account_like"),
        Index("ix_active_assoc_account_label", "account", "label"),
    )

    def __repr__(self) -> str:
        return (
            f"<ActiveAssociation account={self.account!r} "
            f"like={self.like_path!r} label={self.label!r}>"
        )


# ---------------------------------------------------------------------------
# Checkpoint — append-only cursor history
# ---------------------------------------------------------------------------
class Checkpoint(Base):
    __tablename__ = "checkpoints"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    cursor: Mapped[str] = mapped_column(String(255), nullable=False)
    observed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_checkpoints_observed_at", "observed_at"),
    )

    def __repr__(self) -> str:
        return f"<Checkpoint cursor={self.cursor!r} at={self.observed_at}>"
