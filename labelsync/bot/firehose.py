"""
labelsync.bot.firehose — Firehose → asyncio.Queue Adapter
==========================================================

Subscribes to ``com.atproto.sync.subscribeRepos`` with the ``atproto``
async firehose client and publishes every commit onto a bounded
:class:`asyncio.Queue` as a :class:`~labelsync.engine.events.StreamCommit`.

The queue is the only thing the commit processor sees.  When it is full,
``put`` blocks the websocket callback, which stops us reading frames until
the processor catches up.

Record bodies are only decoded from the commit's CAR blocks for like
creates; every other op is forwarded with ``record=None`` so the processor
can still advance the cursor past it.
"""

from __future__ import annotations

import asyncio
import logging

from atproto import (
    CAR,
    AsyncFirehoseSubscribeReposClient,
    firehose_models,
    models,
    parse_subscribe_repos_message,
)

from labelsync.constants import LIKE_PATH_MARKER
from labelsync.engine.events import RepoOp, StreamCommit
from labelsync.errors import StreamFatalError

logger = logging.getLogger(__name__)

# Sentinel put on the queue to tell the consumer to stop.
CLOSE = None

QUEUE_MAXSIZE = 5_000


def to_stream_commit(commit: models.ComAtprotoSyncSubscribeRepos.Commit) -> StreamCommit:
    """Normalize an SDK commit into a :class:`StreamCommit`."""
    needs_records = any(
        op.action == "create" and LIKE_PATH_MARKER in op.path for op in commit.ops
    )
    car = None
    if needs_records and commit.blocks:
        try:
            car = CAR.from_bytes(commit.blocks)
        except Exception as exc:
            logger.debug("Could not parse CAR for seq %s: %s", commit.seq, exc)

    ops: list[RepoOp] = []
    for op in commit.ops:
        record = None
        if car is not None and op.cid is not None and LIKE_PATH_MARKER in op.path:
            record = car.blocks.get(op.cid)
        ops.append(RepoOp(path=op.path, action=op.action, record=record))

    return StreamCommit(seq=commit.seq, time=commit.time, repo=commit.repo, ops=tuple(ops))


class FirehoseSource:
    """Owns one firehose subscription for the lifetime of a pipeline run.

    Parameters
    ----------
    queue:
        Destination for decoded commits.
    cursor:
        Starting sequence number as stored in the checkpoint table, or
        ``None``/``""`` for the relay default (live tail).
    relay_url:
        Override for the relay websocket base URI.
    """

    def __init__(
        self,
        queue: asyncio.Queue,
        cursor: str | None = None,
        relay_url: str | None = None,
    ) -> None:
        self.queue = queue
        self.start_cursor = int(cursor) if cursor else None
        self.relay_url = relay_url
        self.last_seq: int | None = self.start_cursor
        self._client: AsyncFirehoseSubscribeReposClient | None = None
        self._opened = False

    def _build_client(self) -> AsyncFirehoseSubscribeReposClient:
        params = None
        if self.start_cursor is not None:
            params = models.ComAtprotoSyncSubscribeRepos.Params(cursor=self.start_cursor)
        if self.relay_url:
            return AsyncFirehoseSubscribeReposClient(params, base_uri=self.relay_url)
        return AsyncFirehoseSubscribeReposClient(params)

    async def run(self) -> None:
        """Consume the firehose until :meth:`stop` is called.

        Raises
        ------
        StreamFatalError
            If the SDK client gives up.  Carries the last seen sequence.
        """
        self._client = self._build_client()
        logger.info(
            "Connecting to firehose at cursor %s",
            self.start_cursor if self.start_cursor is not None else "(live)",
        )
        try:
            await self._client.start(self._on_message, self._on_callback_error)
        except Exception as exc:
            logger.error("Firehose errored on cursor: %s", self.last_seq, exc_info=exc)
            raise StreamFatalError(self.last_seq, exc) from exc
        logger.info("Firehose subscription closed at cursor %s", self.last_seq)

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.stop()

    async def _on_message(self, message: firehose_models.MessageFrame) -> None:
        if not self._opened:
            self._opened = True
            logger.info("Firehose connection established")

        commit = parse_subscribe_repos_message(message)
        if not isinstance(commit, models.ComAtprotoSyncSubscribeRepos.Commit):
            return

        self.last_seq = commit.seq
        await self.queue.put(to_stream_commit(commit))

    def _on_callback_error(self, exc: BaseException) -> None:
        logger.error("Firehose message handler failed", exc_info=exc)
