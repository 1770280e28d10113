"""
labelsync.engine.events — Stream Envelopes & Op Classification
===============================================================

The firehose adapter normalizes every decoded commit into a
:class:`StreamCommit` before the commit processor sees it, so nothing past
``labelsync.bot.firehose`` depends on the SDK's model classes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from labelsync.constants import LIKE_PATH_MARKER

__all__ = [
    "LikeEvent",
    "OpKind",
    "RepoOp",
    "StreamCommit",
    "classify_op",
    "post_id_of_uri",
    "repo_of_uri",
    "subject_uri",
]


class OpKind(enum.StrEnum):
    """What the processor does with a single repo op."""
    FILTERED = "filtered"
    LIKE_CREATE = "like_create"
    LIKE_REMOVE = "like_remove"


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RepoOp:
    """One create/update/delete inside a commit.

    ``record`` is the decoded record body for creates/updates, ``None`` for
    deletes.
    """

    path: str
    action: str
    record: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class StreamCommit:
    """One commit observed on the firehose."""

    seq: int
    time: str
    repo: str
    ops: tuple[RepoOp, ...] = field(default_factory=tuple)

    @property
    def cursor(self) -> str:
        """The checkpoint value for this commit."""
        return str(self.seq)


@dataclass(frozen=True, slots=True)
class LikeEvent:
    """A like (or unlike) pulled out of a commit."""

    account: str
    like_path: str
    target_post_uri: str | None
    timestamp: str


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def classify_op(op: RepoOp) -> OpKind:
    """Sort *op* into filtered-out, like-create or like-remove."""
    if LIKE_PATH_MARKER not in op.path:
        return OpKind.FILTERED
    if op.action == "create":
        return OpKind.LIKE_CREATE
    return OpKind.LIKE_REMOVE


def subject_uri(record: dict[str, Any] | None) -> str | None:
    """Return ``record.subject.uri`` for a like record, if present."""
    if not record:
        return None
    subject = record.get("subject")
    if not isinstance(subject, dict):
        return None
    uri = subject.get("uri")
    return uri if isinstance(uri, str) else None


def repo_of_uri(uri: str) -> str:
    """``at://did:plc:x/app.bsky.feed.post/3k`` → ``did:plc:x``."""
    return uri.removeprefix("at://").split("/")[0]


def post_id_of_uri(uri: str) -> str:
    """``at://did:plc:x/app.bsky.feed.post/3k`` → ``3k``."""
    return uri.rstrip("/").split("/")[-1]
