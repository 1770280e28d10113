"""
labelsync.bot.supervisor — Resumption Controller
=================================================

Keeps the service alive across failures.  Each pass of
:meth:`ResumptionController.run_forever` builds a **fresh** pipeline
(which reloads the latest checkpoint), runs it to completion and turns the
returned :data:`~labelsync.errors.Outcome` into a resume time:

==================================  ====================================
Outcome                             Resume at
==================================  ====================================
``Ok``                              never — the controller exits
``RateLimited`` with reset epoch    ``reset_epoch + rate_limit_margin``
``RateLimited`` without epoch       ``now + fatal_cooldown``
``TransientError`` / ``Fatal``      ``now + fatal_cooldown``
==================================  ====================================

While waiting, a "Standing by" line is logged at most every
``status_log_interval`` seconds.  The controller never restarts before the
resume time.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Protocol

from labelsync.errors import Fatal, Ok, Outcome, RateLimited, TransientError, outcome_from_exception

logger = logging.getLogger(__name__)


class Pipeline(Protocol):
    async def run(self) -> Outcome: ...
    def request_stop(self) -> None: ...


class ResumptionController:
    """Runs pipelines back to back, standing by between failed runs.

    ``clock`` and ``sleep`` are injectable so tests can drive time by hand.
    """

    def __init__(
        self,
        pipeline_factory: Callable[[], Pipeline],
        *,
        rate_limit_margin: float = 3.0,
        fatal_cooldown: float = 300.0,
        status_log_interval: float = 900.0,
        startup_delay: float = 0.0,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.pipeline_factory = pipeline_factory
        self.rate_limit_margin = rate_limit_margin
        self.fatal_cooldown = fatal_cooldown
        self.status_log_interval = status_log_interval
        self.startup_delay = startup_delay
        self.clock = clock
        self.sleep = sleep

        self.runs = 0
        self.last_outcome: Outcome | None = None
        self._stopping = False
        self._current: Pipeline | None = None
        self._standby: asyncio.Task | None = None

    # -------------------------------------------------------------------
    # Policy
    # -------------------------------------------------------------------
    def resume_at(self, outcome: Outcome, now: float) -> float | None:
        """Epoch seconds at which to start the next run, or ``None`` to exit."""
        match outcome:
            case Ok():
                return None
            case RateLimited(reset_epoch=int() | float() as epoch):
                return epoch + self.rate_limit_margin
            case RateLimited() | TransientError() | Fatal():
                return now + self.fatal_cooldown

    # -------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------
    async def run_forever(self) -> Outcome | None:
        """Run until a pipeline returns ``Ok`` or :meth:`stop` is called."""
        if self.startup_delay > 0:
            logger.info("Waiting %.0f s before the first run…", self.startup_delay)
            await self._sleep(self.startup_delay)

        while not self._stopping:
            self._current = self.pipeline_factory()
            self.runs += 1
            try:
                outcome = await self._current.run()
            except Exception as exc:
                logger.exception("Pipeline run %d crashed", self.runs)
                outcome = outcome_from_exception(exc)
            finally:
                self._current = None
            self.last_outcome = outcome

            resume = self.resume_at(outcome, self.clock())
            if resume is None or self._stopping:
                break
            await self.wait_until(resume, self._reason(outcome))

        logger.info("Resumption controller stopped after %d run(s)", self.runs)
        return self.last_outcome

    async def wait_until(self, resume_at: float, reason: str = "") -> None:
        """Sleep until *resume_at*, logging status at most once per interval."""
        while not self._stopping:
            remaining = resume_at - self.clock()
            if remaining <= 0:
                break
            logger.info(
                "Standing by%s.  Will resume in ~%d minutes, around %s",
                f" ({reason})" if reason else "",
                round(remaining / 60),
                datetime.fromtimestamp(resume_at).strftime("%m/%d/%Y %I:%M %p"),
            )
            await self._sleep(min(remaining, self.status_log_interval))
        if not self._stopping:
            logger.info("Delay expired. Restarting...")

    def stop(self) -> None:
        """End the loop: stop the running pipeline or cut a standby short."""
        self._stopping = True
        if self._current is not None:
            self._current.request_stop()
        if self._standby is not None:
            self._standby.cancel()

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    async def _sleep(self, seconds: float) -> None:
        self._standby = asyncio.ensure_future(self.sleep(seconds))
        try:
            await self._standby
        except asyncio.CancelledError:
            if not self._stopping:
                raise
        finally:
            self._standby = None

    @staticmethod
    def _reason(outcome: Outcome) -> str:
        match outcome:
            case RateLimited(reset_date=date):
                return f"rate limited until {date or 'unknown'}"
            case TransientError(reason=reason) | Fatal(reason=reason):
                return reason
            case _:
                return ""
