"""
tests/test_events.py — Op Classification & URI Helpers
=======================================================
"""

from __future__ import annotations

from conftest import like_create, like_delete, post_uri

from labelsync.engine.events import (
    OpKind,
    RepoOp,
    classify_op,
    post_id_of_uri,
    repo_of_uri,
    subject_uri,
)


class TestClassifyOp:
    def test_non_like_is_filtered(self):
        op = RepoOp(path="app.bsky.feed.post/3k", action="create", record={"text": "hi"})
        assert classify_op(op) is OpKind.FILTERED

    def test_like_create(self):
        assert classify_op(like_create("l1", post_uri("p1"))) is OpKind.LIKE_CREATE

    def test_like_delete(self):
        assert classify_op(like_delete("l1")) is OpKind.LIKE_REMOVE

    def test_like_update_counts_as_remove(self):
        op = RepoOp(path="app.bsky.feed.like/l1", action="update")
        assert classify_op(op) is OpKind.LIKE_REMOVE

    def test_repost_is_filtered(self):
        op = RepoOp(path="app.bsky.feed.repost/r1", action="create")
        assert classify_op(op) is OpKind.FILTERED


class TestUriHelpers:
    def test_subject_uri(self):
        op = like_create("l1", post_uri("p1"))
        assert subject_uri(op.record) == post_uri("p1")

    def test_subject_uri_missing(self):
        assert subject_uri(None) is None
        assert subject_uri({}) is None
        assert subject_uri({"subject": "nope"}) is None

    def test_repo_and_post_id(self):
        uri = "at://did:plc:x/app.bsky.feed.post/3kabc"
        assert repo_of_uri(uri) == "did:plc:x"
        assert post_id_of_uri(uri) == "3kabc"
