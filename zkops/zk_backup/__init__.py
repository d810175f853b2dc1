"""
zk-backup - Backup archival of ZooKeeper persisted state.

This package bundles a bounded window of a ZooKeeper server's persisted
state into a single gzip-compressed tar archive:
- The N most recent snapshots (snapshot.<hex zxid>)
- Every transaction log (log.<hex zxid>) needed to replay from the
  oldest of those snapshots

Architecture:
    ┌──────────────┐     ┌───────────────┐     ┌────────────────┐
    │ zoo.cfg/env/ │────▶│  BackupConfig │────▶│ PersistedState │
    │    flags     │     │  (immutable)  │     │     Store      │
    └──────────────┘     └───────────────┘     └───────┬────────┘
                                                       │
                        ┌──────────────────────────────┤
                        ▼                              ▼
                 ┌─────────────┐               ┌──────────────┐
                 │  Snapshot   │──────────────▶│     Log      │
                 │  selection  │  oldest zxid  │  selection   │
                 └──────┬──────┘               └──────┬───────┘
                        │                             │
                        ▼                             ▼
                 ┌──────────────────────────────────────────┐
                 │     ArchiveWriter  ->  data.tar.gz       │
                 └────────────────────┬─────────────────────┘
                                      ▼
                              ┌──────────────┐
                              │ S3 (optional)│
                              └──────────────┘

Invariants:
    - Snapshot and log contents are opaque; only names are interpreted
    - Source files are never modified
    - Snapshots precede logs in the archive

How to change safely:
    - File naming must stay bit-compatible with ZooKeeper's
    - Test selection against directories holding both snapshots and logs
"""

from ._version import __version__

__all__ = ["__version__"]
