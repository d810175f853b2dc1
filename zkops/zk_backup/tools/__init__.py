"""
CLI tools for zk-backup.

This module provides:
- backup: Archive recent snapshots and their transaction logs

Invariants:
    - Tools work offline (no running ZooKeeper server required)
    - Source data is never modified
    - All operations are logged for audit
"""

from .backup import BackupResult, BackupTool

__all__ = ["BackupResult", "BackupTool"]
