"""
tests/test_labels.py — Post Text → Label Parsing
=================================================
Pure-function tests for slug normalization, display names and the label
definitions published to the catalog.
"""

from __future__ import annotations

import pytest

from labelsync.constants import DEFAULT_SLUG_REMAP
from labelsync.engine.labels import (
    build_label_definition,
    describe_label,
    display_name_for,
    parse_label_post,
    title_case,
)
from labelsync.errors import NotALabelPost


class TestParseLabelPost:
    def test_role_prefix(self):
        parsed = parse_label_post("Role: Red Panda")
        assert parsed.slug == "red-panda"
        assert parsed.display_name == "Red Panda"
        assert parsed.is_meta is False

    def test_meta_prefix_is_meta(self):
        parsed = parse_label_post("Meta: Furry Artist")
        assert parsed.slug == "furry-artist"
        assert parsed.is_meta is True

    def test_note_after_delimiter_is_dropped(self):
        parsed = parse_label_post("Role: Red Panda // like this if you are one")
        assert parsed.slug == "red-panda"
        assert parsed.display_name == "Red Panda"

    def test_surrounding_whitespace_trimmed(self):
        assert parse_label_post("Role:   Fox   ").slug == "fox"

    def test_apostrophes_removed_from_slug_only(self):
        parsed = parse_label_post("Role: Writer's Block")
        assert parsed.slug == "writers-block"
        assert parsed.display_name == "Writer's Block"

    def test_every_apostrophe_removed(self):
        assert parse_label_post("Role: Rock 'n' Roll").slug == "rock-n-roll"

    def test_mixed_case_lowered(self):
        assert parse_label_post("Role: DJ Booth").slug == "dj-booth"

    @pytest.mark.parametrize(("text", "slug"), [
        ("Meta: NSFW", "nsfw-meta"),
        ("Role: 3D", "three-d"),
        ("Meta: Gore", "gore-meta"),
    ])
    def test_default_remap(self, text, slug):
        assert parse_label_post(text).slug == slug

    def test_display_name_uses_pre_remap_form(self):
        assert parse_label_post("Meta: NSFW").display_name == "Nsfw"

    def test_custom_remap_table(self):
        remap = {**DEFAULT_SLUG_REMAP, "cat": "cat-person"}
        assert parse_label_post("Role: Cat", remap).slug == "cat-person"

    def test_no_prefix_raises(self):
        with pytest.raises(NotALabelPost):
            parse_label_post("Red Panda")

    def test_prefix_must_be_at_start(self):
        with pytest.raises(NotALabelPost):
            parse_label_post("I am a Role: Red Panda")

    def test_prefix_is_case_sensitive(self):
        with pytest.raises(NotALabelPost):
            parse_label_post("role: red panda")


class TestDisplayNames:
    def test_title_case(self):
        assert title_case("hello wORLD") == "Hello World"

    def test_display_name_from_slug(self):
        assert display_name_for("red-panda") == "Red Panda"


class TestDescriptions:
    def test_meta_description(self):
        assert describe_label("Nsfw", True) == "Nsfw [Category: Meta]"

    def test_article_a(self):
        assert describe_label("Red Panda", False) == "This user is a Red Panda!"

    def test_article_an_before_vowel(self):
        assert describe_label("Otter", False) == "This user is an Otter!"

    def test_article_from_slug_display_name(self):
        assert describe_label(display_name_for("elephant"), False) == "This user is an Elephant!"

    def test_definition_shape(self):
        definition = build_label_definition("red-panda", "Red Panda", False)
        assert definition["identifier"] == "red-panda"
        assert definition["severity"] == "inform"
        assert definition["blurs"] == "none"
        assert definition["defaultSetting"] == "warn"
        assert definition["adultOnly"] is False
        assert definition["locales"] == [{
            "lang": "en",
            "name": "Red Panda",
            "description": "This user is a Red Panda!",
        }]
