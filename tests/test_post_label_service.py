"""
tests/test_post_label_service.py — Post → Label Resolver
=========================================================
Uses an in-memory SQLite database via the shared conftest fixtures and the
in-memory FakeLabelerApi as the content source.
"""

from __future__ import annotations

import pytest
from conftest import LABELER_DID, post_uri, run_async
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from labelsync.database.models import PostLabel
from labelsync.errors import NotALabelPost
from labelsync.services.post_label_service import PostLabelResolver, ResolvedLabel


class TestResolve:
    @pytest.fixture(autouse=True)
    def _resolver(self, db_engine, fake_api):
        self.engine = db_engine
        self.api = fake_api
        self.resolver = PostLabelResolver(db_engine, fake_api)

    def _row_count(self) -> int:
        with Session(self.engine) as s:
            return s.scalar(select(func.count()).select_from(PostLabel))

    def test_miss_fetches_and_caches(self):
        resolved = run_async(self.resolver.resolve(post_uri("p1")))
        assert resolved.slug == "red-panda"
        assert resolved.display_name == "Red Panda"
        assert resolved.from_cache is False
        assert self.api.post_fetches == [(LABELER_DID, "p1")]
        assert self._row_count() == 1

    def test_hit_makes_no_network_call(self):
        run_async(self.resolver.resolve(post_uri("p1")))
        again = run_async(self.resolver.resolve(post_uri("p1")))
        assert again.slug == "red-panda"
        assert again.from_cache is True
        assert len(self.api.post_fetches) == 1

    def test_cache_keeps_meta_flag(self):
        run_async(self.resolver.resolve(post_uri("p2")))
        cached = run_async(self.resolver.resolve(post_uri("p2")))
        assert cached.slug == "nsfw-meta"
        assert cached.is_meta is True

    def test_cached_label_survives_post_edit(self):
        run_async(self.resolver.resolve(post_uri("p1")))
        self.api.posts["p1"] = "Role: Something Else"
        assert run_async(self.resolver.resolve(post_uri("p1"))).slug == "red-panda"

    def test_non_label_post_not_cached(self):
        with pytest.raises(NotALabelPost):
            run_async(self.resolver.resolve(post_uri("p3")))
        assert self._row_count() == 0

    def test_config_remap_applied(self, db_engine, fake_api):
        resolver = PostLabelResolver(db_engine, fake_api, {"red-panda": "panda"})
        assert run_async(resolver.resolve(post_uri("p1"))).slug == "panda"


class TestCacheLabel:
    def test_insert_if_absent(self, db_engine, fake_api):
        resolver = PostLabelResolver(db_engine, fake_api)
        first = ResolvedLabel("p9", "fox", "Fox", False, from_cache=False)
        second = ResolvedLabel("p9", "wolf", "Wolf", False, from_cache=False)

        assert resolver.cache_label(first) is True
        assert resolver.cache_label(second) is False
        assert resolver.get_cached("p9").slug == "fox"

    def test_known_posts_groups_by_label(self, db_engine, fake_api):
        resolver = PostLabelResolver(db_engine, fake_api)
        resolver.cache_label(ResolvedLabel("a", "fox", "Fox", False, from_cache=False))
        resolver.cache_label(ResolvedLabel("b", "fox", "Fox", False, from_cache=False))
        resolver.cache_label(ResolvedLabel("c", "owl", "Owl", False, from_cache=False))

        known = resolver.known_posts()
        assert sorted(known["fox"]) == ["a", "b"]
        assert known["owl"] == ["c"]
