"""
Unit tests for snapshot and log selection.

Tests cover:
- Retention count handling
- Gap-free log coverage from the oldest selected snapshot
- The "nothing to archive" outcome
"""

import pytest

from zkops.zk_backup.errors import ConfigurationError
from zkops.zk_backup.persistence import PersistedStateStore
from zkops.zk_backup.selection import select, select_logs_for, select_recent_snapshots


class TestSelectRecentSnapshots:
    """Tests for select_recent_snapshots."""

    def test_keeps_count_most_recent(self, snap_dir, txn_dir, touch):
        for zxid in (5, 8, 10):
            touch(snap_dir, f"snapshot.{zxid:x}")
        store = PersistedStateStore.open(txn_dir, snap_dir)

        snaps = select_recent_snapshots(store, 2)

        assert [s.zxid for s in snaps] == [10, 8]

    @pytest.mark.parametrize("count", [1, 2, 3, 7])
    def test_length_and_strict_order(self, snap_dir, txn_dir, touch, count):
        for zxid in (0x3, 0x11, 0x2F, 0x100):
            touch(snap_dir, f"snapshot.{zxid:x}")
        store = PersistedStateStore.open(txn_dir, snap_dir)

        snaps = select_recent_snapshots(store, count)
        found = [s.zxid for s in snaps]

        assert len(found) == min(count, 4)
        assert all(a > b for a, b in zip(found, found[1:]))

    def test_empty_directory_is_legal(self, snap_dir, txn_dir):
        store = PersistedStateStore.open(txn_dir, snap_dir)

        assert select_recent_snapshots(store, 3) == []

    @pytest.mark.parametrize("count", [0, -1])
    def test_rejects_count_below_one(self, snap_dir, txn_dir, count):
        store = PersistedStateStore.open(txn_dir, snap_dir)

        with pytest.raises(ConfigurationError):
            select_recent_snapshots(store, count)


class TestSelectLogsFor:
    """Tests for select_logs_for."""

    def test_covers_oldest_snapshot_without_gap(self, snap_dir, txn_dir, touch):
        for zxid in (0x100, 0x200, 0x300):
            touch(snap_dir, f"snapshot.{zxid:x}")
        for zxid in (0x1, 0x150, 0x180, 0x250, 0x310):
            touch(txn_dir, f"log.{zxid:x}")
        store = PersistedStateStore.open(txn_dir, snap_dir)

        snaps = select_recent_snapshots(store, 2)
        logs = select_logs_for(store, snaps)

        oldest = snaps[-1].zxid
        assert oldest == 0x200
        assert [log.zxid for log in logs] == [0x180, 0x250, 0x310]
        assert len([log for log in logs if log.zxid <= oldest]) == 1

    def test_snapshots_without_logs(self, snap_dir, txn_dir, touch, caplog):
        touch(snap_dir, "snapshot.10")
        store = PersistedStateStore.open(txn_dir, snap_dir)

        logs = select_logs_for(store, select_recent_snapshots(store, 1))

        assert logs == []
        assert "snapshots only" in caplog.text

    def test_no_snapshots_takes_every_log(self, snap_dir, txn_dir, touch):
        for name in ("log.30", "log.1", "log.200"):
            touch(txn_dir, name)
        touch(txn_dir, "log-not-a-log")
        store = PersistedStateStore.open(txn_dir, snap_dir)

        logs = select_logs_for(store, [])

        assert [log.name for log in logs] == ["log.1", "log.30", "log.200"]

    def test_nothing_to_archive(self, snap_dir, txn_dir, touch):
        touch(txn_dir, "currentEpoch")
        store = PersistedStateStore.open(txn_dir, snap_dir)

        assert select_logs_for(store, []) is None


class TestSelect:
    """Tests for the combined selection."""

    def test_result(self, snap_dir, txn_dir, touch):
        touch(snap_dir, "snapshot.10")
        touch(txn_dir, "log.1")
        touch(txn_dir, "log.a")
        touch(txn_dir, "log.12")
        store = PersistedStateStore.open(txn_dir, snap_dir)

        result = select(store, 1)

        assert not result.is_empty
        assert [s.name for s in result.snapshots] == ["snapshot.10"]
        assert [log.name for log in result.logs] == ["log.a", "log.12"]

    def test_single_floor_log_with_duplicate_names(self, snap_dir, txn_dir, touch):
        touch(snap_dir, "snapshot.10")
        touch(txn_dir, "log.a")
        touch(txn_dir, "log.0a")
        touch(txn_dir, "log.20")
        store = PersistedStateStore.open(txn_dir, snap_dir)

        result = select(store, 1)

        assert [log.name for log in result.logs] == ["log.0a", "log.20"]

    def test_empty_result(self, snap_dir, txn_dir):
        store = PersistedStateStore.open(txn_dir, snap_dir)

        result = select(store, 1)

        assert result.is_empty
        assert result.snapshots == []
