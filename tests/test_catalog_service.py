"""
tests/test_catalog_service.py — Label Catalog Synchronizer
===========================================================
"""

from __future__ import annotations

from conftest import FakeLabelerApi, run_async

from labelsync.services.catalog_service import LabelCatalogSynchronizer


class TestEnsureLabelExists:
    def test_adds_missing_label(self):
        api = FakeLabelerApi()
        catalog = LabelCatalogSynchronizer(api)

        assert run_async(catalog.ensure_label_exists("red-panda", "Red Panda", False)) is True

        policies = api.catalog["policies"]
        assert policies["labelValues"] == ["red-panda"]
        assert policies["labelValueDefinitions"][0]["identifier"] == "red-panda"
        assert api.catalog_writes == 1

    def test_existing_label_not_rewritten(self):
        api = FakeLabelerApi()
        api.catalog = {"policies": {
            "labelValues": ["fox"],
            "labelValueDefinitions": [{"identifier": "fox", "locales": []}],
        }}
        catalog = LabelCatalogSynchronizer(api)

        assert run_async(catalog.ensure_label_exists("fox", "Fox", False)) is False
        assert api.catalog_writes == 0

    def test_append_keeps_existing_entries(self):
        api = FakeLabelerApi()
        api.catalog = {"policies": {
            "labelValues": ["fox"],
            "labelValueDefinitions": [{"identifier": "fox", "locales": []}],
        }}
        catalog = LabelCatalogSynchronizer(api)
        run_async(catalog.ensure_label_exists("owl", "Owl", False))

        policies = api.catalog["policies"]
        assert policies["labelValues"] == ["fox", "owl"]
        assert [d["identifier"] for d in policies["labelValueDefinitions"]] == ["fox", "owl"]

    def test_known_label_skips_fetch(self):
        api = FakeLabelerApi()
        catalog = LabelCatalogSynchronizer(api)
        run_async(catalog.ensure_label_exists("fox", "Fox", False))
        reads = api.catalog_reads

        assert run_async(catalog.ensure_label_exists("fox", "Fox", False)) is False
        assert api.catalog_reads == reads
        assert api.catalog["policies"]["labelValues"].count("fox") == 1

    def test_meta_definition_description(self):
        api = FakeLabelerApi()
        run_async(LabelCatalogSynchronizer(api).ensure_label_exists("nsfw-meta", "Nsfw", True))
        locale = api.catalog["policies"]["labelValueDefinitions"][0]["locales"][0]
        assert locale["description"] == "Nsfw [Category: Meta]"

    def test_fetch_catalog_fills_missing_lists(self):
        api = FakeLabelerApi()
        api.catalog = {}
        policies = run_async(LabelCatalogSynchronizer(api).fetch_catalog())
        assert policies["labelValues"] == []
        assert policies["labelValueDefinitions"] == []
