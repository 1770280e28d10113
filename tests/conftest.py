"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Iterable
from typing import Any

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from labelsync.database.models import Base
from labelsync.engine.events import RepoOp, StreamCommit
from labelsync.errors import Ok, Outcome, UnknownAccount

LABELER_DID = "did:plc:labeler"
ALICE = "did:plc:alice"
BOB = "did:plc:bob"


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    loop = asyncio.get_event_loop_policy().new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(loop.shutdown_default_executor())
        loop.close()


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all labelsync tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# In-memory stand-in for LabelerApi
# ---------------------------------------------------------------------------
class FakeLabelerApi:
    """Records every remote call; behaves like a cooperative Ozone + PDS."""

    def __init__(self, labeler_did: str = LABELER_DID, posts: dict[str, str] | None = None) -> None:
        self.labeler_did = labeler_did
        self.handle = "labeler.test"
        self.posts: dict[str, str] = dict(posts or {})
        self.catalog: dict[str, Any] = {
            "policies": {"labelValues": [], "labelValueDefinitions": []}
        }
        self.unknown_accounts: set[str] = set()
        self.login_outcome: Outcome = Ok()
        self.emit_error: Exception | None = None

        self.logins = 0
        self.post_fetches: list[tuple[str, str]] = []
        self.catalog_reads = 0
        self.catalog_writes = 0
        self.events: list[tuple[str, tuple[str, ...], tuple[str, ...]]] = []

    async def login(self) -> Outcome:
        self.logins += 1
        return self.login_outcome

    async def get_post_text(self, repo: str, rkey: str) -> str:
        self.post_fetches.append((repo, rkey))
        return self.posts[rkey]

    async def get_label_catalog_record(self) -> dict[str, Any]:
        self.catalog_reads += 1
        return copy.deepcopy(self.catalog)

    async def put_label_catalog_record(self, policies: dict[str, Any]) -> None:
        self.catalog_writes += 1
        self.catalog = {"policies": copy.deepcopy(policies)}

    async def get_account_moderation_record(self, did: str) -> Any:
        if did in self.unknown_accounts:
            raise UnknownAccount(did)
        return {"did": did}

    async def emit_label_event(
        self,
        did: str,
        create_labels: Iterable[str] = (),
        remove_labels: Iterable[str] = (),
    ) -> None:
        if self.emit_error is not None:
            raise self.emit_error
        self.events.append((did, tuple(create_labels), tuple(remove_labels)))

    # Convenience views
    def granted(self) -> list[tuple[str, str]]:
        return [(did, label) for did, create, _ in self.events for label in create]

    def revoked(self) -> list[tuple[str, str]]:
        return [(did, label) for did, _, remove in self.events for label in remove]


@pytest.fixture
def fake_api() -> FakeLabelerApi:
    return FakeLabelerApi(
        posts={
            "p1": "Role: Red Panda // the fluffy one",
            "p2": "Meta: NSFW",
            "p3": "just a regular post",
            "p4": "Role: Red Panda",
        }
    )


# ---------------------------------------------------------------------------
# Commit builders
# ---------------------------------------------------------------------------
def post_uri(rkey: str, repo: str = LABELER_DID) -> str:
    return f"at://{repo}/app.bsky.feed.post/{rkey}"


def like_create(rkey: str, target: str) -> RepoOp:
    return RepoOp(
        path=f"app.bsky.feed.like/{rkey}",
        action="create",
        record={"$type": "app.bsky.feed.like", "subject": {"uri": target, "cid": "bafy"}},
    )


def like_delete(rkey: str) -> RepoOp:
    return RepoOp(path=f"app.bsky.feed.like/{rkey}", action="delete")


def make_commit(seq: int, repo: str, *ops: RepoOp) -> StreamCommit:
    return StreamCommit(seq=seq, time="2026-10-19T10:00:00Z", repo=repo, ops=tuple(ops))
