"""
Persistence module for zk-backup.

This module knows how ZooKeeper lays out its persisted state on disk:
- File naming (prefix.hexZxid) and zxid parsing
- Scanning snapshot and transaction log directories

Invariants:
    - Snapshot and log contents are opaque and never parsed
    - Ordering follows the zxid embedded in each file name
"""

from .naming import LOG_PREFIX, SNAPSHOT_PREFIX, VERSION_DIR, make_name, parse_zxid
from .store import MalformedNamePolicy, PersistedFile, PersistedStateStore

__all__ = [
    "LOG_PREFIX",
    "SNAPSHOT_PREFIX",
    "VERSION_DIR",
    "MalformedNamePolicy",
    "PersistedFile",
    "PersistedStateStore",
    "make_name",
    "parse_zxid",
]
