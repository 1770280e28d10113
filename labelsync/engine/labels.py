"""
labelsync.engine.labels — Post Text → Label
============================================

Pure functions, no I/O.  Turns the text of a curated post into a label slug
and builds the label definition published in the labeler's catalog.

    "Role: Red Panda // see thread"  →  slug "red-panda", name "Red Panda"
    "Meta: NSFW"                     →  slug "nsfw-meta" (remapped), meta
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from labelsync.constants import (
    DEFAULT_SLUG_REMAP,
    LABEL_BLURS,
    LABEL_DEFAULT_SETTING,
    LABEL_LOCALE,
    LABEL_PREFIXES,
    LABEL_SEVERITY,
    META_PREFIX,
    NOTE_DELIMITER,
    VOWELS,
)
from labelsync.errors import NotALabelPost

_WORD = re.compile(r"\w\S*")


@dataclass(frozen=True, slots=True)
class ParsedLabel:
    """A label extracted from a curated post."""

    slug: str
    display_name: str
    is_meta: bool


def title_case(text: str) -> str:
    """Capitalize the first letter of each word and lower-case the rest."""
    return _WORD.sub(lambda m: m[0][0].upper() + m[0][1:].lower(), text)


def display_name_for(label: str) -> str:
    """``"red-panda"`` → ``"Red Panda"``."""
    return title_case(label.replace("-", " "))


def parse_label_post(text: str, remap: Mapping[str, str] = DEFAULT_SLUG_REMAP) -> ParsedLabel:
    """Extract the label from a curated post's *text*.

    Raises
    ------
    NotALabelPost
        If *text* starts with neither ``"Role: "`` nor ``"Meta: "``.
    """
    prefix = next((p for p in LABEL_PREFIXES if text.startswith(p)), None)
    if prefix is None:
        raise NotALabelPost(text[:40])

    body = text[len(prefix):].split(NOTE_DELIMITER)[0].strip()
    label = body.replace(" ", "-").lower()
    slug = label.replace("'", "")
    slug = remap.get(slug, slug)

    return ParsedLabel(
        slug=slug,
        display_name=display_name_for(label),
        is_meta=prefix == META_PREFIX,
    )


def describe_label(display_name: str, is_meta: bool) -> str:
    """Description shown to users subscribed to the labeler."""
    if is_meta:
        return f"{display_name} [Category: Meta]"
    article = "an" if display_name[:1].lower() in VOWELS else "a"
    return f"This user is {article} {display_name}!"


def build_label_definition(slug: str, display_name: str, is_meta: bool) -> dict[str, Any]:
    """A ``com.atproto.label.defs#labelValueDefinition`` for *slug*."""
    return {
        "identifier": slug,
        "severity": LABEL_SEVERITY,
        "blurs": LABEL_BLURS,
        "defaultSetting": LABEL_DEFAULT_SETTING,
        "adultOnly": False,
        "locales": [
            {
                "lang": LABEL_LOCALE,
                "name": display_name,
                "description": describe_label(display_name, is_meta),
            }
        ],
    }
