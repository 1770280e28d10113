"""
labelsync — Like-driven Moderation Labels for the AT Protocol
==============================================================
Watches the relay firehose for likes of the labeler's curated "Role:" and
"Meta:" posts, turns each liked post into a label slug, and keeps the Ozone
moderation service's per-account labels in step with the likes each account
currently holds.

Package layout::

    labelsync/
    ├── config.py          # YAML + .env → typed Python config
    ├── constants.py       # Collections, prefixes, slug remap table
    ├── errors.py          # Exception taxonomy + typed run outcomes
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # post_labels, active_associations, checkpoints
    ├── engine/
    │   ├── events.py      # StreamCommit / RepoOp / LikeEvent envelopes
    │   └── labels.py      # Post text → slug, display name, description
    ├── services/
    │   ├── checkpoint_service.py  # Cursor history
    │   ├── post_label_service.py  # Post → label resolver with cache
    │   ├── catalog_service.py     # Append-only Ozone label catalog
    │   ├── ledger_service.py      # Active (account, like, label) rows
    │   ├── applier_service.py     # Grant / revoke labels in Ozone
    │   └── export_service.py      # Optional labels.json dump
    └── bot/
        ├── __main__.py    # Entry point (python -m labelsync.bot)
        ├── client.py      # atproto AsyncClient wrapper
        ├── firehose.py    # Firehose → asyncio.Queue adapter
        ├── processor.py   # Commit processor (per-op state machine)
        ├── tasks.py       # Checkpoint + export loops
        ├── core.py        # One pipeline run
        └── supervisor.py  # Restart / rate-limit standby loop
"""

__version__ = "0.1.0"
