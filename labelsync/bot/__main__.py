"""
labelsync.bot.__main__ — Entry point for ``python -m labelsync.bot``
====================================================================

Wiring:
1. Load .env (secrets: ``DATABASE_URL``, ``BSKY_USER``, ``BSKY_PASS``).
2. Load config.yaml (labeler DID, intervals, export, slug remap).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Build the shared :class:`LabelerApi`.
5. Hand a pipeline factory to the :class:`ResumptionController` and run it
   until SIGINT/SIGTERM.

Run with::

    uv run python -m labelsync.bot
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import sys

from dotenv import load_dotenv

from labelsync.bot.client import LabelerApi
from labelsync.bot.core import LabelSyncBot
from labelsync.bot.supervisor import ResumptionController
from labelsync.config import LabelSyncConfig, load_config
from labelsync.database.engine import create_db_engine, init_db

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
# The SDK's websocket layer is chatty at INFO
logging.getLogger("websockets").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger("labelsync")


async def serve(cfg: LabelSyncConfig, controller: ResumptionController) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, controller.stop)

    logger.info("Starting labelsync for %s…", cfg.labeler_did)
    await controller.run_forever()


def main() -> None:
    """Bootstrap and run the labeler."""

    # 1. Environment variables (secrets).
    load_dotenv()

    username = os.getenv("BSKY_USER")
    password = os.getenv("BSKY_PASS")
    if not username or not password:
        logger.critical(
            "BSKY_USER / BSKY_PASS are not set.  "
            "Copy .env.example → .env and fill in the labeler credentials."
        )
        sys.exit(1)

    # 2. Soft configuration.
    cfg = load_config(os.getenv("LABELSYNC_CONFIG", "config.yaml"))
    logger.info("Config loaded — Labeler: %s", cfg.labeler_did)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)

    # 4. Remote API, shared by every run.
    api = LabelerApi(cfg.labeler_did, username, password, service_url=cfg.service_url)

    # 5. Supervisor.
    controller = ResumptionController(
        lambda: LabelSyncBot(cfg, engine, api),
        rate_limit_margin=cfg.rate_limit_margin,
        fatal_cooldown=cfg.fatal_cooldown,
        status_log_interval=cfg.status_log_interval,
        startup_delay=cfg.startup_delay,
    )

    try:
        asyncio.run(serve(cfg, controller))
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")
    finally:
        engine.dispose()


if __name__ == "__main__":
    main()
