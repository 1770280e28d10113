"""
labelsync.services.export_service — Diagnostic JSON Export
===========================================================

Optional side channel for operators and static sites: dumps the label
catalog to ``<export_dir>/labels.json`` and the last login status to
``<export_dir>/ratelimit.json``.  Nothing in the pipeline reads these files.

Each exported label links to its curated post when exactly one cached post
defines it, otherwise to a Bluesky search of the labeler's posts for
``"species:"`` plus the label's words.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any
from urllib.parse import quote

from labelsync.constants import (
    BSKY_WEB_URL,
    EXPORT_LABELS_FILENAME,
    EXPORT_SEARCH_MARKER,
    EXPORT_STATUS_FILENAME,
)
from labelsync.errors import Ok, Outcome, RateLimited

logger = logging.getLogger(__name__)


def build_label_export(
    definitions: list[dict[str, Any]],
    known_posts: dict[str, list[str]],
    labeler_did: str,
    labeler_handle: str,
) -> list[dict[str, Any]]:
    """Flatten label definitions into the ``labels.json`` shape."""
    exported: list[dict[str, Any]] = []
    for definition in definitions:
        identifier = definition.get("identifier", "")
        locales = definition.get("locales") or [{}]
        posts = known_posts.get(identifier, [])
        if len(posts) == 1:
            link = f"{BSKY_WEB_URL}/profile/{labeler_did}/post/{posts[0]}"
        else:
            words = "+".join(quote(w) for w in identifier.split("-"))
            link = (
                f"{BSKY_WEB_URL}/search?q=from%3A{quote(labeler_handle)}"
                f"+%22{quote(EXPORT_SEARCH_MARKER)}%22+%22{words}%22"
            )
        exported.append({
            "id": identifier,
            "name": locales[0].get("name"),
            "description": locales[0].get("description"),
            "locales": locales,
            "posts": link,
        })
    return exported


def status_payload(outcome: Outcome) -> dict[str, Any]:
    """``ratelimit.json`` body for a login *outcome*."""
    match outcome:
        case RateLimited(reset_epoch=epoch, reset_date=date):
            return {"status": "RATE_LIMITED", "ratelimit-reset": epoch, "reset_date": date}
        case Ok():
            return {"status": "OK"}
        case _:
            return {"status": "ERROR", "reason": getattr(outcome, "reason", None)}


def write_json(export_dir: str | Path, filename: str, payload: Any) -> Path:
    """Write *payload* to ``export_dir/filename``, creating the directory."""
    directory = Path(export_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return path


def export_labels(export_dir: str | Path, labels: list[dict[str, Any]]) -> Path:
    path = write_json(export_dir, EXPORT_LABELS_FILENAME, labels)
    logger.info("Exported %d labels → %s", len(labels), path)
    return path


def export_status(export_dir: str | Path, outcome: Outcome) -> Path:
    return write_json(export_dir, EXPORT_STATUS_FILENAME, status_payload(outcome))
