"""
Selection module for zk-backup.

Picks the snapshots and transaction logs that make up one backup.

Invariants:
    - The oldest selected snapshot can be replayed forward without gaps
    - Absence of any log files is a benign "nothing to archive" state
"""

from .selector import SelectionResult, select, select_logs_for, select_recent_snapshots

__all__ = ["SelectionResult", "select", "select_logs_for", "select_recent_snapshots"]
