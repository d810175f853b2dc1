"""
Backup tool for ZooKeeper persisted state.

One run:
1. Open the snapshot and transaction log directories
2. Select the N most recent snapshots
3. Select the logs needed to replay from the oldest of them
4. Write snapshots then logs into <tar_dir>/data.tar.gz
5. Optionally upload the archive to S3

If there are no snapshots and no logs, the run ends without writing
anything. That is a normal outcome for a fresh ensemble.

Invariants:
    - Runs are one-shot and strictly sequential
    - Source files are only read
    - Errors propagate to the caller; there are no retries

How to change safely:
    - Keep the selection/archive split so each stage stays testable alone
    - Add new stages after the archive is complete
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..archive import ArchiveUploader, ArchiveWriter
from ..config import BackupConfig
from ..persistence import PersistedStateStore
from ..selection import select

logger = logging.getLogger(__name__)


@dataclass
class BackupResult:
    """Result of a backup run.

    Attributes:
        archived: Whether an archive was written
        archive_path: Path of the written archive
        snapshots: Names of archived snapshots, most recent first
        logs: Names of archived transaction logs
        s3_key: Object key if the archive was uploaded
        duration_ms: Total run duration
    """

    archived: bool
    archive_path: Optional[Path] = None
    snapshots: List[str] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)
    s3_key: Optional[str] = None
    duration_ms: int = 0


class BackupTool:
    """Runs one backup of a ZooKeeper ensemble member.

    Example:
        >>> tool = BackupTool(BackupConfig.from_env())
        >>> result = tool.run()
        >>> print(result.archive_path)
    """

    def __init__(
        self,
        config: BackupConfig,
        uploader: Optional[ArchiveUploader] = None,
    ) -> None:
        """Initialize the backup tool.

        Args:
            config: Backup configuration
            uploader: Uploader to use instead of one built from config.s3
        """
        self.config = config
        self._uploader = uploader

    def run(self) -> BackupResult:
        """Execute the backup.

        Returns:
            BackupResult describing what was archived

        Raises:
            ConfigurationError: If a directory is missing or unreadable
            MalformedNameError: If a file name is malformed and the policy is abort
            ArchiveWriteError: If writing the archive fails
            ArchiveUploadError: If uploading the archive fails
        """
        start_time = time.time()
        config = self.config

        store = PersistedStateStore.open(config.txn_dir, config.snap_dir, config.on_malformed)
        selection = select(store, config.snap_count)

        if selection.is_empty:
            logger.info("No transaction log files found, skipping compression")
            return BackupResult(archived=False, duration_ms=_elapsed_ms(start_time))

        logger.info(
            f"Selected {len(selection.snapshots)} snapshot(s) and "
            f"{len(selection.logs)} transaction log(s)",
            extra={
                "snapshots": [s.name for s in selection.snapshots],
                "logs": [log.name for log in selection.logs],
            },
        )

        writer = ArchiveWriter(config.tar_dir, config.archive_name)
        archive_path = writer.write(selection.snapshots, selection.logs)

        s3_key = None
        if self._uploader is not None or config.s3.enabled:
            uploader = self._uploader or ArchiveUploader(config.s3)
            s3_key = asyncio.run(uploader.upload(archive_path))

        return BackupResult(
            archived=True,
            archive_path=archive_path,
            snapshots=[s.name for s in selection.snapshots],
            logs=[log.name for log in selection.logs],
            s3_key=s3_key,
            duration_ms=_elapsed_ms(start_time),
        )


def _elapsed_ms(start_time: float) -> int:
    return int((time.time() - start_time) * 1000)
