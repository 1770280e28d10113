"""
labelsync.errors — Exception Taxonomy & Run Outcomes
=====================================================

Two layers:

* **Exceptions** are raised inside the pipeline.  Op-level ones
  (:class:`NotALabelPost`, :class:`UnknownAccount`,
  :class:`TransientRemoteError`) are caught per op by the commit processor.
  :class:`RateLimitExceeded` and :class:`StreamFatalError` end the run.
* **Outcomes** are what a finished pipeline run (or a login attempt)
  *returns* to the :class:`~labelsync.bot.supervisor.ResumptionController`.
  They are plain frozen dataclasses so the controller can ``match`` on them
  exhaustively instead of poking at exception attributes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------
class LabelSyncError(Exception):
    """Base class for every labelsync-specific error."""


class ConfigError(LabelSyncError):
    """A configuration value is present but invalid."""


class TransientRemoteError(LabelSyncError):
    """Network blip, timeout or unexpected remote failure.

    The op is abandoned; a replay of the same like after a resume is the
    retry mechanism.
    """


class RateLimitExceeded(LabelSyncError):
    """The remote API is throttling us.

    ``reset_epoch`` is the server-supplied reset time in epoch seconds, or
    ``None`` when the response carried no usable header.
    """

    def __init__(self, reset_epoch: int | None = None, message: str = "We are rate limited.") -> None:
        super().__init__(message)
        self.reset_epoch = reset_epoch

    @property
    def reset_date(self) -> str | None:
        return format_reset_date(self.reset_epoch)


class NotALabelPost(LabelSyncError):
    """The liked post doesn't start with a recognised label prefix."""


class UnknownAccount(LabelSyncError):
    """The moderation service has no record for the account."""


class StoreWriteFailure(LabelSyncError):
    """A durable write (checkpoint, cache, ledger) failed."""


class StreamFatalError(LabelSyncError):
    """The firehose transport failed in a way it can't recover from."""

    def __init__(self, cursor: int | None, cause: BaseException | None = None) -> None:
        super().__init__(f"Firehose errored on cursor: {cursor}")
        self.cursor = cursor
        self.cause = cause


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class Ok:
    """The run finished because a shutdown was requested."""


@dataclass(frozen=True, slots=True)
class TransientError:
    """The run ended on a recoverable, non-throttling failure."""

    reason: str


@dataclass(frozen=True, slots=True)
class RateLimited:
    """The run ended because the remote API throttled us."""

    reset_epoch: int | None
    reset_date: str | None = None


@dataclass(frozen=True, slots=True)
class Fatal:
    """The run ended on a stream-level or storage-level failure."""

    reason: str


Outcome = Ok | TransientError | RateLimited | Fatal


def outcome_from_exception(exc: BaseException) -> Outcome:
    """Map an exception that ended a run onto an :data:`Outcome`."""
    if isinstance(exc, RateLimitExceeded):
        return RateLimited(reset_epoch=exc.reset_epoch, reset_date=exc.reset_date)
    if isinstance(exc, TransientRemoteError):
        return TransientError(reason=str(exc))
    return Fatal(reason=f"{type(exc).__name__}: {exc}")


def format_reset_date(reset_epoch: int | None) -> str | None:
    """Render an epoch as ``YYYY-MM-DD HH:MM:SS`` (UTC) for log lines."""
    if reset_epoch is None:
        return None
    return datetime.fromtimestamp(reset_epoch, UTC).strftime("%Y-%m-%d %H:%M:%S")
