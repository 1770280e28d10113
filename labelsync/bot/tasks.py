"""
labelsync.bot.tasks — Periodic Background Loops
================================================

Two timers run beside the commit processor for the lifetime of a run:

* **checkpoint** — every ``checkpoint_interval`` seconds, append the
  processor's newest cursor to the ``checkpoints`` table.  Nothing is
  written when the cursor hasn't moved.  After ``max_checkpoint_failures``
  consecutive failed writes the run is marked degraded and the supervisor
  restarts it from the last cursor that did get stored.
* **export** (optional) — every ``export_interval`` seconds, dump the label
  catalog to ``labels.json``.
"""

from __future__ import annotations

import asyncio
import logging

from labelsync.bot.processor import CommitProcessor
from labelsync.config import LabelSyncConfig
from labelsync.database.engine import run_db
from labelsync.errors import RateLimitExceeded, StoreWriteFailure, TransientRemoteError
from labelsync.services.catalog_service import LabelCatalogSynchronizer
from labelsync.services.checkpoint_service import CheckpointStore
from labelsync.services.export_service import build_label_export, export_labels
from labelsync.services.post_label_service import PostLabelResolver

logger = logging.getLogger(__name__)


class PeriodicTasks:
    """Owns the checkpoint and export loops of one pipeline run."""

    def __init__(
        self,
        cfg: LabelSyncConfig,
        store: CheckpointStore,
        processor: CommitProcessor,
        catalog: LabelCatalogSynchronizer,
        resolver: PostLabelResolver,
        handle: str = "",
    ) -> None:
        self.cfg = cfg
        self.store = store
        self.processor = processor
        self.catalog = catalog
        self.resolver = resolver
        self.handle = handle

        self.saved_cursor: str | None = None
        self.consecutive_failures = 0
        self._degraded = asyncio.Event()
        self._tasks: list[asyncio.Task] = []

    # -------------------------------------------------------------------
    # Checkpoint
    # -------------------------------------------------------------------
    async def checkpoint_once(self) -> bool:
        """Persist the processor's cursor if it advanced.  Returns True on write."""
        cursor = self.processor.latest_cursor
        if cursor is None or cursor == self.saved_cursor:
            return False

        try:
            await run_db(self.store.save, cursor)
        except StoreWriteFailure as exc:
            self.consecutive_failures += 1
            logger.error(
                "Checkpoint write failed (%d/%d): %s",
                self.consecutive_failures, self.cfg.max_checkpoint_failures, exc,
            )
            if self.consecutive_failures >= self.cfg.max_checkpoint_failures:
                self._degraded.set()
            return False

        self.consecutive_failures = 0
        self.saved_cursor = cursor
        logger.info("Checkpoint: cursor %s", cursor)
        return True

    async def wait_degraded(self) -> None:
        await self._degraded.wait()

    @property
    def degraded(self) -> bool:
        return self._degraded.is_set()

    # -------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------
    async def export_once(self) -> int:
        """Write ``labels.json``.  Returns the number of labels exported."""
        try:
            policies = await self.catalog.fetch_catalog()
        except RateLimitExceeded as exc:
            self.processor.halt(exc)
            return 0
        except TransientRemoteError as exc:
            logger.warning("Label export skipped: %s", exc)
            return 0

        known = await run_db(self.resolver.known_posts)
        labels = build_label_export(
            policies["labelValueDefinitions"], known, self.cfg.labeler_did, self.handle,
        )
        await asyncio.to_thread(export_labels, self.cfg.export_dir, labels)
        return len(labels)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def start(self) -> None:
        loop = asyncio.get_running_loop()
        self._tasks.append(loop.create_task(self._checkpoint_loop(), name="checkpoint"))
        if self.cfg.export_enabled:
            self._tasks.append(loop.create_task(self._export_loop(), name="label-export"))

    async def stop(self) -> None:
        """Cancel the loops and wait for them to unwind."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()

    async def _checkpoint_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cfg.checkpoint_interval)
            try:
                await self.checkpoint_once()
            except Exception:
                logger.exception("Checkpoint loop error")

    async def _export_loop(self) -> None:
        while True:
            try:
                await self.export_once()
            except Exception:
                logger.exception("Label export error")
            await asyncio.sleep(self.cfg.export_interval)
