"""
tests/test_config.py — YAML Configuration Loader
=================================================
"""

from __future__ import annotations

import pytest

from labelsync.config import config_from_dict, load_config
from labelsync.errors import ConfigError


class TestLoadConfig:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text('labeler_did: "did:plc:abc"\n', encoding="utf-8")

        cfg = load_config(path)
        assert cfg.labeler_did == "did:plc:abc"
        assert cfg.checkpoint_interval == 60.0
        assert cfg.status_log_interval == 900.0
        assert cfg.rate_limit_margin == 3.0
        assert cfg.fatal_cooldown == 300.0
        assert cfg.startup_delay == 15.0
        assert cfg.relay_url is None
        assert cfg.export_enabled is False
        assert cfg.slug_remap["nsfw"] == "nsfw-meta"

    def test_overrides_and_remap_merge(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            'labeler_did: "did:plc:abc"\n'
            "checkpoint_interval: 30\n"
            "relay_url: wss://relay.example\n"
            "slug_remap:\n"
            "  Cat: cat-person\n",
            encoding="utf-8",
        )
        cfg = load_config(path)
        assert cfg.checkpoint_interval == 30.0
        assert cfg.relay_url == "wss://relay.example"
        assert cfg.slug_remap["cat"] == "cat-person"
        assert cfg.slug_remap["3d"] == "three-d"

    def test_missing_required_key(self):
        with pytest.raises(KeyError):
            config_from_dict({})


class TestValidation:
    def test_did_required(self):
        with pytest.raises(ConfigError):
            config_from_dict({"labeler_did": "labeler.bsky.social"})

    def test_non_positive_interval(self):
        with pytest.raises(ConfigError):
            config_from_dict({"labeler_did": "did:plc:x", "checkpoint_interval": 0})

    def test_status_interval_must_exceed_checkpoint_interval(self):
        with pytest.raises(ConfigError):
            config_from_dict({
                "labeler_did": "did:plc:x",
                "checkpoint_interval": 600,
                "status_log_interval": 300,
            })

    def test_failure_threshold_at_least_one(self):
        with pytest.raises(ConfigError):
            config_from_dict({"labeler_did": "did:plc:x", "max_checkpoint_failures": 0})
