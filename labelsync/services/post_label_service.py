"""
labelsync.services.post_label_service — Post → Label Resolver
==============================================================

Given the AT URI of a liked post, returns the label it stands for.

How it works:
    1. Look up ``post_labels`` by the post's record key.  A hit returns
       immediately — no network call, which keeps us well under the
       PDS rate limits on popular posts.
    2. On a miss, fetch the post text from the content source and parse it
       with :func:`~labelsync.engine.labels.parse_label_post`.
    3. Non-label posts raise :class:`NotALabelPost` and are **not** cached.
    4. Label posts are cached with an insert-if-absent on ``post_id``, so two
       concurrent resolutions of the same post leave exactly one row.

The post's label never changes once cached; edits to the post text are
ignored.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError

from labelsync.constants import DEFAULT_SLUG_REMAP
from labelsync.database.engine import get_session, run_db
from labelsync.database.models import PostLabel
from labelsync.engine.events import post_id_of_uri, repo_of_uri
from labelsync.engine.labels import parse_label_post

logger = logging.getLogger(__name__)


class ContentSource(Protocol):
    async def get_post_text(self, repo: str, rkey: str) -> str: ...


@dataclass(frozen=True, slots=True)
class ResolvedLabel:
    """Outcome of :meth:`PostLabelResolver.resolve`."""

    post_id: str
    slug: str
    display_name: str
    is_meta: bool
    from_cache: bool


class PostLabelResolver:
    """Resolves curated posts into labels, backed by the ``post_labels`` cache."""

    def __init__(
        self,
        engine: Engine,
        content: ContentSource,
        remap: Mapping[str, str] = DEFAULT_SLUG_REMAP,
    ) -> None:
        self.engine = engine
        self.content = content
        self.remap = remap

    async def resolve(self, post_uri: str) -> ResolvedLabel:
        """Return the label for *post_uri*.

        Raises
        ------
        NotALabelPost
            The post text has no recognised prefix.
        """
        post_id = post_id_of_uri(post_uri)

        cached = await run_db(self.get_cached, post_id)
        if cached is not None:
            return cached

        text = await self.content.get_post_text(repo_of_uri(post_uri), post_id)
        parsed = parse_label_post(text, self.remap)

        resolved = ResolvedLabel(
            post_id=post_id,
            slug=parsed.slug,
            display_name=parsed.display_name,
            is_meta=parsed.is_meta,
            from_cache=False,
        )
        await run_db(self.cache_label, resolved)
        return resolved

    # -------------------------------------------------------------------
    # Cache (sync, call via run_db)
    # -------------------------------------------------------------------
    def get_cached(self, post_id: str) -> ResolvedLabel | None:
        """Return the cached label for *post_id*, if any."""
        with get_session(self.engine) as session:
            row = session.scalars(
                select(PostLabel).where(PostLabel.post_id == post_id).limit(1)
            ).first()
            if row is None:
                return None
            return ResolvedLabel(
                post_id=row.post_id,
                slug=row.label,
                display_name=row.display_name,
                is_meta=row.is_meta,
                from_cache=True,
            )

    def cache_label(self, resolved: ResolvedLabel) -> bool:
        """Insert *resolved* unless a row for its post already exists.

        Returns True if a row was written.
        """
        try:
            with get_session(self.engine) as session:
                session.add(PostLabel(
                    post_id=resolved.post_id,
                    label=resolved.slug,
                    display_name=resolved.display_name,
                    is_meta=resolved.is_meta,
                ))
                session.flush()  # Trigger UNIQUE(post_id) inside the try
        except IntegrityError:
            # Another task cached this post first; keep its row.
            logger.debug("Post %s already cached", resolved.post_id)
            return False
        logger.info("Cached post %s → %s", resolved.post_id, resolved.slug)
        return True

    def known_posts(self) -> dict[str, list[str]]:
        """Map each label to the post ids that define it."""
        with get_session(self.engine) as session:
            rows = session.execute(select(PostLabel.label, PostLabel.post_id)).all()
        posts: dict[str, list[str]] = {}
        for label, post_id in rows:
            posts.setdefault(label, []).append(post_id)
        return posts
