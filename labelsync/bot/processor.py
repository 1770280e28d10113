"""
labelsync.bot.processor — Stream Commit Processor
==================================================

Consumes :class:`StreamCommit` values from the firehose queue and drives the
label pipeline for every like op it finds.

Per op, one of three paths (see :func:`~labelsync.engine.events.classify_op`):

``FILTERED``
    Not a like — nothing happens.
``LIKE_CREATE``
    Like of one of the labeler's own posts:
    resolve label → ensure it's in the catalog → record the association →
    grant the label.  Each step awaits the previous one, so a label is never
    granted before it is declared.
``LIKE_REMOVE``
    Unlike: delete the association rows → for each label they carried,
    revoke it unless another active like still justifies it.

Every op runs as its own task.  The consume loop never waits on an op, so
commit N+1 is read while commit N's ops are still in flight.  Op tasks are
tracked so :meth:`CommitProcessor.drain` can await them on shutdown.

Failures stay inside the op that raised them, except
:class:`RateLimitExceeded`, which halts the processor so the whole run can
back off.
"""

from __future__ import annotations

import asyncio
import logging

from labelsync.database.engine import run_db
from labelsync.engine.events import (
    LikeEvent,
    OpKind,
    RepoOp,
    StreamCommit,
    classify_op,
    repo_of_uri,
    subject_uri,
)
from labelsync.errors import (
    NotALabelPost,
    RateLimitExceeded,
    TransientRemoteError,
    UnknownAccount,
)
from labelsync.services.applier_service import ModerationLabelApplier
from labelsync.services.catalog_service import LabelCatalogSynchronizer
from labelsync.services.ledger_service import AssociationLedger
from labelsync.services.post_label_service import PostLabelResolver

logger = logging.getLogger(__name__)


class CommitProcessor:
    """Turns like ops into ledger changes and Ozone label events."""

    def __init__(
        self,
        *,
        labeler_did: str,
        resolver: PostLabelResolver,
        catalog: LabelCatalogSynchronizer,
        ledger: AssociationLedger,
        applier: ModerationLabelApplier,
    ) -> None:
        self.labeler_did = labeler_did
        self.resolver = resolver
        self.catalog = catalog
        self.ledger = ledger
        self.applier = applier

        # Newest cursor seen; read by the checkpoint loop
        self.latest_cursor: str | None = None
        self.failure: RateLimitExceeded | None = None

        self._tasks: set[asyncio.Task] = set()
        self._halted = asyncio.Event()

    # -------------------------------------------------------------------
    # Stream side
    # -------------------------------------------------------------------
    async def consume(self, queue: asyncio.Queue) -> None:
        """Read commits until the close sentinel (``None``) arrives."""
        while True:
            commit = await queue.get()
            if commit is None:
                break
            self.handle_commit(commit)
        logger.info("Commit processor stopped at cursor %s", self.latest_cursor)

    def handle_commit(self, commit: StreamCommit) -> int:
        """Spawn a task per relevant op in *commit*.  Returns how many."""
        if self.failure is not None:
            # Halted: leave the rest of the queue for the next run.
            return 0

        self.latest_cursor = commit.cursor
        spawned = 0
        for op in commit.ops:
            kind = classify_op(op)
            if kind is OpKind.FILTERED:
                continue
            self._spawn(kind, self._like_event(commit, op))
            spawned += 1
        return spawned

    def halt(self, exc: RateLimitExceeded) -> None:
        """Stop accepting commits and report *exc* to the run."""
        if self.failure is None:
            self.failure = exc
            logger.warning(
                "Rate limited (reset: %s) — halting commit processing",
                exc.reset_date or "unknown",
            )
        self._halted.set()

    async def wait_halted(self) -> None:
        await self._halted.wait()

    async def drain(self) -> None:
        """Wait for every in-flight op task to finish."""
        if self._tasks:
            logger.info("Draining %d in-flight op task(s)…", len(self._tasks))
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    # -------------------------------------------------------------------
    # Op side
    # -------------------------------------------------------------------
    async def handle_like_create(self, event: LikeEvent) -> bool:
        """Label *event.account* for liking a curated post.

        Returns False if the like doesn't target one of the labeler's posts.
        """
        uri = event.target_post_uri
        if not uri or repo_of_uri(uri) != self.labeler_did:
            return False

        resolved = await self.resolver.resolve(uri)
        await self.catalog.ensure_label_exists(
            resolved.slug, resolved.display_name, resolved.is_meta,
        )
        await run_db(
            self.ledger.record_active,
            event.account, event.like_path, uri, resolved.slug,
        )
        await self.applier.grant(event.account, resolved.slug)
        return True

    async def handle_like_remove(self, event: LikeEvent) -> set[str]:
        """Undo whatever *event*'s like had granted.  Returns revoked labels."""
        removed = await run_db(self.ledger.remove_by_like_path, event.account, event.like_path)
        revoked: set[str] = set()
        for label in sorted(removed):
            still_held = await run_db(
                self.ledger.has_other_active_with_label, event.account, label,
            )
            if still_held:
                logger.info(
                    "Keeping %s on %s — another like still justifies it",
                    label, event.account,
                )
                continue
            if await self.applier.revoke(event.account, label):
                revoked.add(label)
        return revoked

    async def _process_op(self, kind: OpKind, event: LikeEvent) -> None:
        try:
            if kind is OpKind.LIKE_CREATE:
                await self.handle_like_create(event)
            else:
                await self.handle_like_remove(event)
        except NotALabelPost:
            return
        except RateLimitExceeded as exc:
            self.halt(exc)
        except UnknownAccount as exc:
            logger.warning("Unknown account %s, op abandoned", exc)
        except TransientRemoteError as exc:
            logger.warning("Op %s for %s abandoned: %s", event.like_path, event.account, exc)
        except Exception:
            logger.exception("Error processing %s for %s", event.like_path, event.account)

    def _spawn(self, kind: OpKind, event: LikeEvent) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(
            self._process_op(kind, event), name=f"{kind}:{event.like_path}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @staticmethod
    def _like_event(commit: StreamCommit, op: RepoOp) -> LikeEvent:
        return LikeEvent(
            account=commit.repo,
            like_path=op.path,
            target_post_uri=subject_uri(op.record),
            timestamp=commit.time,
        )
