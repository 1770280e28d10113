"""
labelsync.constants — Shared Constants
=======================================

Single source of truth for AT Protocol collection names, the curated post
prefixes, and the slug remap table.  Import from here instead of
duplicating in services and the bot.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# AT Protocol collections
# ---------------------------------------------------------------------------
LIKE_COLLECTION = "app.bsky.feed.like"
# Repo op paths look like "app.bsky.feed.like/3kxyz..."
LIKE_PATH_MARKER = f"{LIKE_COLLECTION}/"

LABELER_SERVICE_COLLECTION = "app.bsky.labeler.service"
LABELER_SERVICE_RKEY = "self"
LABELER_PROXY_SERVICE = "atproto_labeler"

MOD_EVENT_LABEL = "tools.ozone.moderation.defs#modEventLabel"
REPO_REF = "com.atproto.admin.defs#repoRef"

# ---------------------------------------------------------------------------
# Curated post format
# ---------------------------------------------------------------------------
ROLE_PREFIX = "Role: "
META_PREFIX = "Meta: "
LABEL_PREFIXES: tuple[str, ...] = (ROLE_PREFIX, META_PREFIX)

# Everything after this delimiter in a post is commentary, not the label
NOTE_DELIMITER = "//"

# ---------------------------------------------------------------------------
# Slug remap: corrects slugs that are ambiguous or collide with
# Bluesky's global label values.  Extended via ``slug_remap`` in config.yaml.
# ---------------------------------------------------------------------------
DEFAULT_SLUG_REMAP: dict[str, str] = {
    "3d": "three-d",
    "nsfw": "nsfw-meta",
    "porn": "porn-meta",
    "nudity": "nudity-meta",
    "sexual": "sexual-meta",
    "gore": "gore-meta",
}

# ---------------------------------------------------------------------------
# Label definition defaults (app.bsky.labeler.service policies)
# ---------------------------------------------------------------------------
LABEL_SEVERITY = "inform"
LABEL_BLURS = "none"
LABEL_DEFAULT_SETTING = "warn"
LABEL_LOCALE = "en"

VOWELS: frozenset[str] = frozenset("aeiou")

# ---------------------------------------------------------------------------
# Diagnostic export
# ---------------------------------------------------------------------------
EXPORT_LABELS_FILENAME = "labels.json"
EXPORT_STATUS_FILENAME = "ratelimit.json"
BSKY_WEB_URL = "https://bsky.app"
# Literal term every search link in labels.json includes
EXPORT_SEARCH_MARKER = "species:"
