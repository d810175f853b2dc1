"""
Read-only view over ZooKeeper's persisted state directories.

The PersistedStateStore reproduces the directory scanning ZooKeeper's own
persistence layer (FileTxnSnapLog) performs for recovery bookkeeping:
- find_recent_snapshots: the N snapshots with the highest zxids
- find_companion_logs: the logs needed to replay from a given zxid
- list_logs: every transaction log in the log directory

File contents are never opened here. Snapshot validity (checksums,
completeness) is the coordination service's concern and is not inferred.

Invariants:
    - Files are identified only by their prefix.hexZxid names
    - Files of other shapes (acceptedEpoch, currentEpoch, ...) are ignored
    - Nothing on disk is created, modified or deleted

How to change safely:
    - Keep ordering rules identical to ZooKeeper's Util.sortDataDir
    - Test with snapshot and log directories that coincide
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..errors import ConfigurationError, MalformedNameError
from .naming import LOG_PREFIX, SNAPSHOT_PREFIX, VERSION_DIR, has_prefix, parse_zxid

logger = logging.getLogger(__name__)


class MalformedNamePolicy(Enum):
    """How a prefixed file with an unreadable zxid is handled."""

    ABORT = "abort"
    SKIP = "skip"


@dataclass(frozen=True)
class PersistedFile:
    """A snapshot or transaction log file on disk.

    Attributes:
        path: Full path to the file
        kind: Name prefix ("snapshot" or "log")
        zxid: Transaction id encoded in the name
    """

    path: Path
    kind: str
    zxid: int

    @property
    def name(self) -> str:
        return self.path.name

    def __str__(self) -> str:
        return self.name


class PersistedStateStore:
    """Scans a snapshot directory and a transaction log directory.

    Attributes:
        txn_dir: Directory holding log.<zxid> files
        snap_dir: Directory holding snapshot.<zxid> files
        on_malformed: What to do with a prefixed file whose zxid is unreadable

    Example:
        >>> store = PersistedStateStore.open("/data/zk/log", "/data/zk/data")
        >>> snaps = store.find_recent_snapshots(2)
        >>> logs = store.find_companion_logs(snaps[-1].zxid)
    """

    def __init__(
        self,
        txn_dir: Path,
        snap_dir: Path,
        on_malformed: MalformedNamePolicy | None = None,
    ) -> None:
        self.txn_dir = Path(txn_dir)
        self.snap_dir = Path(snap_dir)
        self.on_malformed = on_malformed or MalformedNamePolicy.ABORT

    @classmethod
    def open(
        cls,
        txn_dir: str | Path,
        snap_dir: str | Path,
        on_malformed: MalformedNamePolicy | None = None,
    ) -> PersistedStateStore:
        """Open a store over configured ZooKeeper directories.

        ZooKeeper keeps its files in a "version-2" sub-directory of dataDir
        and dataLogDir. Either the configured directory or that
        sub-directory may be given.

        Raises:
            ConfigurationError: If a directory is missing or unreadable
        """
        return cls(
            _resolve_dir(txn_dir, "txn_dir"),
            _resolve_dir(snap_dir, "snap_dir"),
            on_malformed,
        )

    def find_recent_snapshots(self, n: int) -> list[PersistedFile]:
        """Return up to n snapshots, most recent (highest zxid) first."""
        snapshots = sorted(
            self._scan(self.snap_dir, SNAPSHOT_PREFIX, "snap_dir"),
            key=lambda f: f.zxid,
            reverse=True,
        )

        selected: list[PersistedFile] = []
        for snap in snapshots:
            if len(selected) == n:
                break
            if selected and selected[-1].zxid == snap.zxid:
                logger.warning(
                    f"Ignoring snapshot {snap.name}: same zxid as {selected[-1].name}"
                )
                continue
            selected.append(snap)
        return selected

    def find_companion_logs(self, floor_zxid: int) -> list[PersistedFile]:
        """Return the logs needed to replay from floor_zxid onward.

        That is the log starting at the greatest zxid <= floor_zxid plus
        every log starting after it, ascending. If no log starts at or
        before floor_zxid, every log is returned.
        """
        logs = self.list_logs()

        start = None
        for log in logs:
            if log.zxid <= floor_zxid:
                start = log.zxid

        if start is None:
            return logs
        return [log for log in logs if log.zxid >= start]

    def list_logs(self) -> list[PersistedFile]:
        """Return every transaction log, ascending by zxid.

        Logs whose names encode the same zxid (log.a, log.0a) are collapsed
        to the first in name order.
        """
        logs = sorted(
            self._scan(self.txn_dir, LOG_PREFIX, "txn_dir"),
            key=lambda f: (f.zxid, f.name),
        )

        unique: list[PersistedFile] = []
        for log in logs:
            if unique and unique[-1].zxid == log.zxid:
                logger.warning(f"Ignoring log {log.name}: same zxid as {unique[-1].name}")
                continue
            unique.append(log)
        return unique

    def _scan(self, directory: Path, prefix: str, setting: str) -> list[PersistedFile]:
        try:
            entries = sorted(directory.iterdir())
        except OSError as e:
            raise ConfigurationError(
                f"{setting} cannot be listed: {directory}: {e.strerror or e}",
                setting=setting,
            ) from e

        found = []
        for entry in entries:
            if not has_prefix(entry.name, prefix) or not entry.is_file():
                continue
            try:
                zxid = parse_zxid(entry.name, prefix)
            except MalformedNameError as e:
                if self.on_malformed is MalformedNamePolicy.ABORT:
                    raise
                logger.warning(f"Skipping {entry}: {e.message}")
                continue
            found.append(PersistedFile(path=entry, kind=prefix, zxid=zxid))
        return found


def _resolve_dir(directory: str | Path, setting: str) -> Path:
    """Validate a configured directory and descend into version-2 if present."""
    path = Path(directory)
    if not path.is_dir():
        raise ConfigurationError(f"{setting} is not a directory: {path}", setting=setting)

    versioned = path / VERSION_DIR
    if versioned.is_dir():
        path = versioned

    if not os.access(path, os.R_OK | os.X_OK):
        raise ConfigurationError(f"{setting} is not readable: {path}", setting=setting)
    return path
