"""
labelsync.services.applier_service — Moderation Label Applier
==============================================================

Grants and revokes labels on accounts through Ozone.  It keeps no record of
what it has already granted; the association ledger decides when to call
it, and Ozone treats a repeated grant as a no-op.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

from labelsync.errors import UnknownAccount

logger = logging.getLogger(__name__)


class ModerationApi(Protocol):
    async def get_account_moderation_record(self, did: str) -> Any: ...

    async def emit_label_event(
        self,
        did: str,
        create_labels: Iterable[str] = (),
        remove_labels: Iterable[str] = (),
    ) -> None: ...


class ModerationLabelApplier:
    """Issues add/remove label events for one account at a time."""

    def __init__(self, api: ModerationApi) -> None:
        self.api = api

    async def grant(self, account: str, label: str) -> bool:
        """Apply *label* to *account*.  Returns False if the account is unknown."""
        if not await self._account_known(account):
            return False
        await self.api.emit_label_event(account, create_labels=[label])
        logger.info("Labeled %s with %s", account, label)
        return True

    async def revoke(self, account: str, label: str) -> bool:
        """Negate *label* on *account*.  Returns False if the account is unknown."""
        if not await self._account_known(account):
            return False
        await self.api.emit_label_event(account, remove_labels=[label])
        logger.info("Deleted label %s for %s", label, account)
        return True

    async def _account_known(self, account: str) -> bool:
        try:
            await self.api.get_account_moderation_record(account)
        except UnknownAccount:
            logger.warning("Ozone has no record of %s — label change abandoned", account)
            return False
        return True
