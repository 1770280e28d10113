"""
tests/test_ledger_service.py — Association Ledger
==================================================
"""

from __future__ import annotations

import pytest
from conftest import ALICE, BOB, post_uri

from labelsync.services.ledger_service import AssociationLedger


class TestAssociationLedger:
    @pytest.fixture(autouse=True)
    def _ledger(self, db_engine):
        self.ledger = AssociationLedger(db_engine)

    def test_record_is_idempotent(self):
        assert self.ledger.record_active(ALICE, "app.bsky.feed.like/l1", post_uri("p1"), "fox")
        assert not self.ledger.record_active(ALICE, "app.bsky.feed.like/l1", post_uri("p1"), "fox")
        assert self.ledger.remove_by_like_path(ALICE, "app.bsky.feed.like/l1") == {"fox"}

    def test_remove_unknown_like_returns_empty(self):
        assert self.ledger.remove_by_like_path(ALICE, "app.bsky.feed.like/nope") == set()

    def test_remove_only_touches_that_like(self):
        self.ledger.record_active(ALICE, "app.bsky.feed.like/l1", post_uri("p1"), "fox")
        self.ledger.record_active(ALICE, "app.bsky.feed.like/l2", post_uri("p4"), "fox")

        self.ledger.remove_by_like_path(ALICE, "app.bsky.feed.like/l1")

        assert self.ledger.has_other_active_with_label(ALICE, "fox") is True

    def test_has_other_active_false_after_last_removed(self):
        self.ledger.record_active(ALICE, "app.bsky.feed.like/l1", post_uri("p1"), "fox")
        self.ledger.remove_by_like_path(ALICE, "app.bsky.feed.like/l1")
        assert self.ledger.has_other_active_with_label(ALICE, "fox") is False

    def test_accounts_are_independent(self):
        self.ledger.record_active(ALICE, "app.bsky.feed.like/l1", post_uri("p1"), "fox")
        self.ledger.record_active(BOB, "app.bsky.feed.like/l1", post_uri("p1"), "fox")

        assert self.ledger.remove_by_like_path(BOB, "app.bsky.feed.like/l1") == {"fox"}
        assert self.ledger.has_other_active_with_label(ALICE, "fox") is True
        assert self.ledger.has_other_active_with_label(BOB, "fox") is False
