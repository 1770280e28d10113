"""
labelsync.bot.core — One Pipeline Run
======================================

**Why this file exists:**
:class:`LabelSyncBot` wires every component for a single run and supervises
it until something ends the run:

1. Log in to the labeler account (and record the result in
   ``ratelimit.json`` when the diagnostic export is on).
2. Load the latest checkpoint and open the firehose from it.
3. Run the commit processor, the checkpoint loop and (optionally) the
   export loop side by side.
4. Wait for the first of:
   * a stop request                          → ``Ok``
   * the processor being rate limited        → ``RateLimited``
   * too many failed checkpoint writes       → ``Fatal``
   * the firehose dying or closing           → ``Fatal``
5. Tear down in order: stop the firehose, close the queue, drain in-flight
   ops, write a final checkpoint.

The returned :data:`~labelsync.errors.Outcome` is handed to the
:class:`~labelsync.bot.supervisor.ResumptionController`, which decides when
to build the next ``LabelSyncBot``.  Instances are single-use.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from sqlalchemy import Engine

from labelsync.bot.client import LabelerApi
from labelsync.bot.firehose import CLOSE, QUEUE_MAXSIZE, FirehoseSource
from labelsync.bot.processor import CommitProcessor
from labelsync.bot.tasks import PeriodicTasks
from labelsync.config import LabelSyncConfig
from labelsync.database.engine import run_db
from labelsync.errors import Fatal, Ok, Outcome, outcome_from_exception
from labelsync.services.applier_service import ModerationLabelApplier
from labelsync.services.catalog_service import LabelCatalogSynchronizer
from labelsync.services.checkpoint_service import CheckpointStore
from labelsync.services.export_service import export_status
from labelsync.services.ledger_service import AssociationLedger
from labelsync.services.post_label_service import PostLabelResolver

logger = logging.getLogger(__name__)

SourceFactory = Callable[..., FirehoseSource]


class LabelSyncBot:
    """A single firehose → Ozone run.

    Parameters
    ----------
    cfg:
        The parsed :class:`LabelSyncConfig` from ``config.yaml``.
    engine:
        SQLAlchemy engine for the three local tables.
    api:
        Shared :class:`LabelerApi` (moderation API + content source).
    source_factory:
        Builds the stream source as ``factory(queue, cursor=..., relay_url=...)``.
        Tests pass a fake here.
    """

    def __init__(
        self,
        cfg: LabelSyncConfig,
        engine: Engine,
        api: LabelerApi,
        source_factory: SourceFactory = FirehoseSource,
    ) -> None:
        self.cfg = cfg
        self.engine = engine
        self.api = api
        self.source_factory = source_factory

        self.store = CheckpointStore(engine)
        self.processor: CommitProcessor | None = None
        self.tasks: PeriodicTasks | None = None
        self._stop_requested = asyncio.Event()

    def request_stop(self) -> None:
        """Ask the run to finish; :meth:`run` then returns ``Ok``."""
        self._stop_requested.set()

    def build_processor(self) -> CommitProcessor:
        resolver = PostLabelResolver(self.engine, self.api, self.cfg.slug_remap)
        return CommitProcessor(
            labeler_did=self.cfg.labeler_did,
            resolver=resolver,
            catalog=LabelCatalogSynchronizer(self.api),
            ledger=AssociationLedger(self.engine),
            applier=ModerationLabelApplier(self.api),
        )

    async def run(self) -> Outcome:
        """Run until stopped or failed.  Never raises for expected failures."""
        login = await self.api.login()
        if self.cfg.export_enabled:
            try:
                await asyncio.to_thread(export_status, self.cfg.export_dir, login)
            except OSError as exc:
                logger.warning("Could not write status export to %s: %s", self.cfg.export_dir, exc)
        if not isinstance(login, Ok):
            return login

        try:
            cursor = await run_db(self.store.load_latest)
        except Exception as exc:
            logger.exception("Could not load the latest checkpoint")
            return outcome_from_exception(exc)

        queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_MAXSIZE)
        processor = self.processor = self.build_processor()
        tasks = self.tasks = PeriodicTasks(
            self.cfg, self.store, processor,
            processor.catalog, processor.resolver,
            handle=self.api.handle,
        )
        source = self.source_factory(queue, cursor=cursor, relay_url=self.cfg.relay_url)

        loop = asyncio.get_running_loop()
        source_task = loop.create_task(source.run(), name="firehose")
        consume_task = loop.create_task(processor.consume(queue), name="commit-processor")
        halted_task = loop.create_task(processor.wait_halted(), name="halted")
        degraded_task = loop.create_task(tasks.wait_degraded(), name="degraded")
        stop_task = loop.create_task(self._stop_requested.wait(), name="stop")
        tasks.start()

        logger.info("Pipeline running (cursor %s)", cursor or "live")
        await asyncio.wait(
            {source_task, consume_task, halted_task, degraded_task, stop_task},
            return_when=asyncio.FIRST_COMPLETED,
        )

        outcome = self._outcome(source_task, consume_task, tasks)

        # -- Teardown -------------------------------------------------------
        await tasks.stop()
        await source.stop()
        if not source_task.done():
            source_task.cancel()
        await asyncio.gather(source_task, return_exceptions=True)

        if not consume_task.done():
            await queue.put(CLOSE)
            await asyncio.gather(consume_task, return_exceptions=True)
        await processor.drain()
        await tasks.checkpoint_once()

        for helper in (halted_task, degraded_task, stop_task):
            helper.cancel()
        await asyncio.gather(halted_task, degraded_task, stop_task, return_exceptions=True)

        # A rate limit hit by an op still in flight at teardown wins over Ok
        if isinstance(outcome, Ok) and processor.failure is not None:
            outcome = outcome_from_exception(processor.failure)

        logger.info("Pipeline stopped: %s", outcome)
        return outcome

    def _outcome(
        self,
        source_task: asyncio.Task,
        consume_task: asyncio.Task,
        tasks: PeriodicTasks,
    ) -> Outcome:
        processor = self.processor
        if processor is not None and processor.failure is not None:
            return outcome_from_exception(processor.failure)
        if self._stop_requested.is_set():
            return Ok()
        if tasks.degraded:
            return Fatal(
                reason=f"{tasks.consecutive_failures} consecutive checkpoint write failures"
            )
        for task in (source_task, consume_task):
            if task.done():
                exc = task.exception()
                if exc is not None:
                    return outcome_from_exception(exc)
                return Fatal(reason=f"{task.get_name()} exited unexpectedly")
        return Fatal(reason="pipeline ended for an unknown reason")
