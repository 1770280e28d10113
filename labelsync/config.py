"""
labelsync.config — YAML Configuration Loader
=============================================

**Why this file exists:**
This module reads ``config.yaml`` for **non-secret** settings (labeler
identity, loop intervals, standby timings, diagnostic export, slug remap).
Credentials and the database URL stay in the environment (``.env``) and are
read where they are used.

Usage::

    from labelsync.config import load_config

    cfg = load_config()             # reads ./config.yaml by default
    print(cfg.labeler_did)          # "did:plc:abc123..."
    print(cfg.checkpoint_interval)  # 60.0
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from labelsync.constants import DEFAULT_SLUG_REMAP
from labelsync.errors import ConfigError


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LabelSyncConfig:
    """Immutable configuration loaded from ``config.yaml``.

    Durations are in seconds.
    """

    # Identity: the labeler account whose posts define labels
    labeler_did: str

    # Endpoints
    service_url: str = "https://bsky.social"
    relay_url: str | None = None  # None → the SDK's default relay

    # Checkpointing
    checkpoint_interval: float = 60.0
    max_checkpoint_failures: int = 3

    # Standby / restart
    startup_delay: float = 15.0
    status_log_interval: float = 900.0
    rate_limit_margin: float = 3.0
    fatal_cooldown: float = 300.0

    # Diagnostic export (labels.json)
    export_enabled: bool = False
    export_dir: str = "/tmp/labels"
    export_interval: float = 3600.0

    # Slug corrections, merged over DEFAULT_SLUG_REMAP
    slug_remap: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_SLUG_REMAP))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> LabelSyncConfig:
    """Read *path* and return a :class:`LabelSyncConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.
        Defaults to ``config.yaml`` in the current working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    ConfigError
        If a value is present but unusable (e.g. a non-positive interval).
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return config_from_dict(raw)


def config_from_dict(raw: dict) -> LabelSyncConfig:
    """Build a :class:`LabelSyncConfig` from an already-parsed mapping."""
    remap = dict(DEFAULT_SLUG_REMAP)
    remap.update({str(k).lower(): str(v) for k, v in (raw.get("slug_remap") or {}).items()})

    defaults = LabelSyncConfig(labeler_did="")
    cfg = LabelSyncConfig(
        labeler_did=str(raw["labeler_did"]),
        service_url=raw.get("service_url", defaults.service_url),
        relay_url=raw.get("relay_url") or None,
        checkpoint_interval=float(raw.get("checkpoint_interval", defaults.checkpoint_interval)),
        max_checkpoint_failures=int(
            raw.get("max_checkpoint_failures", defaults.max_checkpoint_failures)
        ),
        startup_delay=float(raw.get("startup_delay", defaults.startup_delay)),
        status_log_interval=float(raw.get("status_log_interval", defaults.status_log_interval)),
        rate_limit_margin=float(raw.get("rate_limit_margin", defaults.rate_limit_margin)),
        fatal_cooldown=float(raw.get("fatal_cooldown", defaults.fatal_cooldown)),
        export_enabled=bool(raw.get("export_enabled", defaults.export_enabled)),
        export_dir=str(raw.get("export_dir", defaults.export_dir)),
        export_interval=float(raw.get("export_interval", defaults.export_interval)),
        slug_remap=remap,
    )
    _validate(cfg)
    return cfg


def _validate(cfg: LabelSyncConfig) -> None:
    if not cfg.labeler_did.startswith("did:"):
        raise ConfigError(f"labeler_did must be a DID, got {cfg.labeler_did!r}")
    for name in ("checkpoint_interval", "status_log_interval", "export_interval"):
        if getattr(cfg, name) <= 0:
            raise ConfigError(f"{name} must be positive")
    # Standby status lines are meant to be rare compared to checkpoint writes
    if cfg.status_log_interval <= cfg.checkpoint_interval:
        raise ConfigError("status_log_interval must be longer than checkpoint_interval")
    if cfg.max_checkpoint_failures < 1:
        raise ConfigError("max_checkpoint_failures must be at least 1")
