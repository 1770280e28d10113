"""
labelsync.bot.client — Remote Moderation API & Content Source
==============================================================

Thin wrapper around the ``atproto`` :class:`AsyncClient` that exposes only
the calls the pipeline needs, and translates SDK errors into the labelsync
taxonomy:

* HTTP 429 / ``RateLimitExceeded`` → :class:`RateLimitExceeded` carrying the
  ``ratelimit-reset`` epoch from the response headers.
* Network errors and timeouts      → :class:`TransientRemoteError`.
* Anything else from the server    → :class:`TransientRemoteError`
  (or :class:`UnknownAccount` for account lookups).

One instance is shared by every op task.  The SDK refreshes the session
lazily before each request, and redundant refreshes are harmless.
Ozone calls go through ``with_proxy("atproto_labeler", <labeler did>)``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import UTC, datetime
from typing import Any, TypeVar

from atproto import AsyncClient
from atproto_client.exceptions import AtProtocolError, NetworkError, RequestErrorBase
from atproto_client.models.utils import get_model_as_dict

from labelsync.constants import (
    LABELER_PROXY_SERVICE,
    LABELER_SERVICE_COLLECTION,
    LABELER_SERVICE_RKEY,
    MOD_EVENT_LABEL,
    REPO_REF,
)
from labelsync.errors import (
    Ok,
    Outcome,
    RateLimitExceeded,
    TransientRemoteError,
    UnknownAccount,
    outcome_from_exception,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RATE_LIMIT_MARKER = "RateLimitExceeded"
RATE_LIMIT_RESET_HEADER = "ratelimit-reset"


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------
def _header(headers: Any, name: str) -> str | None:
    if not headers:
        return None
    for key, value in dict(headers).items():
        if str(key).lower() == name:
            return str(value)
    return None


def rate_limit_from_error(exc: BaseException) -> RateLimitExceeded | None:
    """Return a :class:`RateLimitExceeded` if *exc* is a throttling response.

    A response counts as throttled when it has status 429 or its body names
    the ``RateLimitExceeded`` error.  The reset epoch comes from the
    ``ratelimit-reset`` header when it parses as an integer.
    """
    response = getattr(exc, "response", None)
    if response is None:
        return None

    status = getattr(response, "status_code", None)
    content = getattr(response, "content", None)
    if status != 429 and RATE_LIMIT_MARKER not in str(content):
        return None

    raw_reset = _header(getattr(response, "headers", None), RATE_LIMIT_RESET_HEADER)
    try:
        reset_epoch = int(raw_reset) if raw_reset is not None else None
    except ValueError:
        reset_epoch = None
    return RateLimitExceeded(reset_epoch=reset_epoch)


def translate_error(exc: BaseException, what: str) -> Exception:
    """Map an SDK exception raised by *what* onto the labelsync taxonomy."""
    limited = rate_limit_from_error(exc)
    if limited is not None:
        return limited
    return TransientRemoteError(f"{what} failed: {type(exc).__name__}: {exc}")


# ---------------------------------------------------------------------------
# LabelerApi
# ---------------------------------------------------------------------------
class LabelerApi:
    """Moderation API + content source for one labeler account.

    Parameters
    ----------
    labeler_did:
        DID of the labeler service (owner of the curated posts and the
        label catalog).
    username, password:
        App credentials for the labeler account.
    service_url:
        PDS / entryway the session is created against.
    client:
        Pre-built SDK client (tests inject a mock here).
    """

    def __init__(
        self,
        labeler_did: str,
        username: str,
        password: str,
        service_url: str = "https://bsky.social",
        client: AsyncClient | None = None,
    ) -> None:
        self.labeler_did = labeler_did
        self._username = username
        self._password = password
        self.client = client or AsyncClient(base_url=service_url)

    @property
    def handle(self) -> str:
        """Login identifier of the labeler account."""
        return self._username

    # -------------------------------------------------------------------
    # Session
    # -------------------------------------------------------------------
    async def login(self) -> Outcome:
        """Create a session.  Returns an :data:`Outcome` instead of raising."""
        try:
            await self._invoke("login", self.client.login, self._username, self._password)
        except (RateLimitExceeded, TransientRemoteError) as exc:
            logger.error("Login failed: %s", exc)
            return outcome_from_exception(exc)
        logger.info("Logged in as %s", self._username)
        return Ok()

    # -------------------------------------------------------------------
    # Content source
    # -------------------------------------------------------------------
    async def get_post_text(self, repo: str, rkey: str) -> str:
        """Return the text of post *rkey* in *repo*."""
        post = await self._invoke("getPost", self.client.get_post, rkey, repo)
        return post.value.text or ""

    # -------------------------------------------------------------------
    # Label catalog
    # -------------------------------------------------------------------
    async def get_label_catalog_record(self) -> dict[str, Any]:
        """Fetch the ``app.bsky.labeler.service/self`` record as a dict."""
        response = await self._invoke(
            "getRecord",
            self._proxied().com.atproto.repo.get_record,
            {
                "repo": self.labeler_did,
                "collection": LABELER_SERVICE_COLLECTION,
                "rkey": LABELER_SERVICE_RKEY,
            },
        )
        value = response.value
        return value if isinstance(value, dict) else get_model_as_dict(value)

    async def put_label_catalog_record(self, policies: dict[str, Any]) -> None:
        """Write back the whole labeler service record with *policies*."""
        await self._invoke(
            "putRecord",
            self._proxied().com.atproto.repo.put_record,
            {
                "repo": self.labeler_did,
                "collection": LABELER_SERVICE_COLLECTION,
                "rkey": LABELER_SERVICE_RKEY,
                "record": {
                    "$type": LABELER_SERVICE_COLLECTION,
                    "policies": policies,
                    "createdAt": datetime.now(UTC).isoformat(),
                },
            },
        )

    # -------------------------------------------------------------------
    # Moderation
    # -------------------------------------------------------------------
    async def get_account_moderation_record(self, did: str) -> Any:
        """Return Ozone's repo view for *did*.

        Raises
        ------
        UnknownAccount
            Ozone has no record of the account.
        RateLimitExceeded, TransientRemoteError
            As for every other call.
        """
        try:
            return await self._proxied().tools.ozone.moderation.get_repo({"did": did})
        except NetworkError as exc:
            raise translate_error(exc, "getRepo") from exc
        except RequestErrorBase as exc:
            limited = rate_limit_from_error(exc)
            if limited is not None:
                raise limited from exc
            raise UnknownAccount(did) from exc
        except AtProtocolError as exc:
            raise translate_error(exc, "getRepo") from exc

    async def emit_label_event(
        self,
        did: str,
        create_labels: Iterable[str] = (),
        remove_labels: Iterable[str] = (),
    ) -> None:
        """Apply and/or negate labels on *did* via a ``modEventLabel``."""
        await self._invoke(
            "emitEvent",
            self._proxied().tools.ozone.moderation.emit_event,
            {
                "event": {
                    "$type": MOD_EVENT_LABEL,
                    "createLabelVals": sorted(create_labels),
                    "negateLabelVals": sorted(remove_labels),
                },
                "subject": {"$type": REPO_REF, "did": did},
                "createdBy": self._created_by(),
                "subjectBlobCids": [],
            },
        )

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------
    def _proxied(self) -> AsyncClient:
        return self.client.with_proxy(LABELER_PROXY_SERVICE, self.labeler_did)

    def _created_by(self) -> str:
        me = getattr(self.client, "me", None)
        return getattr(me, "did", None) or self.labeler_did

    async def _invoke(self, what: str, func: Callable[..., Awaitable[T]], *args: Any) -> T:
        try:
            return await func(*args)
        except AtProtocolError as exc:
            raise translate_error(exc, what) from exc
