"""
labelsync.services.catalog_service — Label Catalog Synchronizer
================================================================

Makes sure a label is declared in the labeler's service record
(``app.bsky.labeler.service/self``) before it is ever applied to an account.

The catalog is two parallel, append-only sequences inside
``record.policies``:

    labelValues            ["red-panda", "fox", ...]
    labelValueDefinitions  [{identifier: "red-panda", locales: [...]}, ...]

Adding a label is a full read-modify-write of the record.  It is not
transactional against concurrent writers — last writer wins.  A label lost
that way is simply added again by the next like that needs it.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from labelsync.engine.labels import build_label_definition

logger = logging.getLogger(__name__)


class CatalogApi(Protocol):
    async def get_label_catalog_record(self) -> dict[str, Any]: ...
    async def put_label_catalog_record(self, policies: dict[str, Any]) -> None: ...


class LabelCatalogSynchronizer:
    """Append-only sync of label definitions into the remote catalog.

    Label values seen in a fetched catalog are remembered for the lifetime
    of this object (one pipeline run) so repeat likes of a known label
    don't re-fetch the record.
    """

    def __init__(self, api: CatalogApi) -> None:
        self.api = api
        self._known: set[str] = set()

    async def fetch_catalog(self) -> dict[str, Any]:
        """Return the current ``policies`` object with both sequences present."""
        record = await self.api.get_label_catalog_record()
        policies = dict(record.get("policies") or {})
        policies["labelValues"] = list(policies.get("labelValues") or [])
        policies["labelValueDefinitions"] = list(policies.get("labelValueDefinitions") or [])
        self._known.update(policies["labelValues"])
        return policies

    async def ensure_label_exists(self, slug: str, display_name: str, is_meta: bool) -> bool:
        """Declare *slug* in the catalog if it isn't there yet.

        Returns True if the catalog was written, False if the label already
        existed.  Existing entries are never modified or removed.
        """
        if slug in self._known:
            return False

        policies = await self.fetch_catalog()
        if slug in policies["labelValues"]:
            logger.debug("Label %s already exists, didn't have to add a new one.", slug)
            return False

        policies["labelValues"].append(slug)
        policies["labelValueDefinitions"].append(
            build_label_definition(slug, display_name, is_meta)
        )
        await self.api.put_label_catalog_record(policies)
        self._known.add(slug)
        logger.info(
            "Added new label: %s (%d labels in catalog)",
            slug, len(policies["labelValues"]),
        )
        return True
