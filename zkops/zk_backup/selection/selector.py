"""
Snapshot and transaction log selection.

Selection decides which persisted files go into a backup:
1. The N most recent snapshots (highest zxid first)
2. The transaction logs needed to replay from the oldest of them

A ZooKeeper ensemble cannot be restored from snapshots alone; the logs
covering everything after the oldest retained snapshot are mandatory
companions.

Invariants:
    - Snapshots are strictly descending by zxid, without duplicates
    - With snapshots, exactly one log starts at or before the oldest
      snapshot's zxid (when such a log exists); all others start after it
    - Without snapshots and without logs, nothing is archived (None)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..errors import ConfigurationError
from ..persistence.store import PersistedFile, PersistedStateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionResult:
    """Files chosen for one backup run.

    Attributes:
        snapshots: Selected snapshots, most recent first
        logs: Selected logs, ascending by zxid; None when there is nothing
            to archive
    """

    snapshots: List[PersistedFile]
    logs: Optional[List[PersistedFile]]

    @property
    def is_empty(self) -> bool:
        return self.logs is None


def select_recent_snapshots(store: PersistedStateStore, count: int) -> List[PersistedFile]:
    """Select up to count snapshots, most recent first.

    Fewer available snapshots than requested is fine, and so is none at
    all (a freshly deployed ensemble).

    Raises:
        ConfigurationError: If count < 1
    """
    if count < 1:
        raise ConfigurationError(
            f"snapshot count must be >= 1, got {count}", setting="snap_count"
        )
    return store.find_recent_snapshots(count)


def select_logs_for(
    store: PersistedStateStore,
    snapshots: List[PersistedFile],
) -> Optional[List[PersistedFile]]:
    """Select the transaction logs that accompany the given snapshots.

    Args:
        store: Persisted state store
        snapshots: Output of select_recent_snapshots

    Returns:
        Logs to archive, or None if there are neither snapshots nor logs
    """
    if snapshots:
        floor_zxid = snapshots[-1].zxid
        logs = store.find_companion_logs(floor_zxid)
        if not logs:
            logger.warning(
                f"No transaction logs found for snapshot zxid 0x{floor_zxid:x}, "
                "archive will contain snapshots only"
            )
        return logs

    logs = store.list_logs()
    if not logs:
        return None
    return logs


def select(store: PersistedStateStore, count: int) -> SelectionResult:
    """Run snapshot and log selection together."""
    snapshots = select_recent_snapshots(store, count)
    logs = select_logs_for(store, snapshots)
    return SelectionResult(snapshots=snapshots, logs=logs)
