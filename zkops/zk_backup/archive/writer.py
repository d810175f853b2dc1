"""
Archive writer for zk-backup.

The ArchiveWriter bundles selected snapshots and transaction logs into a
single gzip-compressed tar file:

    <tar_dir>/data.tar.gz
        snapshot.<zxid>   (most recent first)
        ...
        log.<zxid>        (ascending)
        ...

Restore tooling streams snapshots before logs, so entry order matters.

Invariants:
    - Snapshots are written before logs, each group in the order given
    - Entry names are base file names (no directories)
    - PAX format, so long names never fail
    - The final path only ever holds a complete archive (temp file + rename)
    - The archive mode follows the process umask (0644 under umask 022)
    - Source files are never modified, moved or deleted

How to change safely:
    - Keep entry names verbatim, restore relies on prefix.hexZxid names
    - Test against the system tar binary after format changes
"""

from __future__ import annotations

import gzip
import logging
import os
import tarfile
import tempfile
from pathlib import Path
from typing import Iterable, Sequence

from ..errors import ArchiveWriteError
from ..persistence.store import PersistedFile

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_NAME = "data.tar.gz"

# Process umask, read once; the archive gets the mode open() would give it
_UMASK = os.umask(0)
os.umask(_UMASK)
ARCHIVE_MODE = 0o666 & ~_UMASK


class ArchiveWriter:
    """Writes one backup archive.

    Attributes:
        output_dir: Directory the archive is written into
        archive_name: File name of the archive

    Example:
        >>> writer = ArchiveWriter("/backups")
        >>> path = writer.write(snapshots, logs)
    """

    def __init__(
        self,
        output_dir: str | Path = ".",
        archive_name: str = DEFAULT_ARCHIVE_NAME,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.archive_name = archive_name

        self._entries_written = 0
        self._bytes_written = 0

    @property
    def archive_path(self) -> Path:
        return self.output_dir / self.archive_name

    def write(
        self,
        snapshots: Sequence[PersistedFile],
        logs: Sequence[PersistedFile],
    ) -> Path:
        """Write snapshots then logs into the archive.

        An existing archive with the same name is replaced once the new
        one is complete.

        Returns:
            Path of the written archive

        Raises:
            ArchiveWriteError: On any I/O failure
        """
        archive_path = self.archive_path
        tmp_path: Path | None = None
        current: PersistedFile | None = None

        try:
            with tempfile.NamedTemporaryFile(
                dir=self.output_dir,
                prefix=f".{self.archive_name}.",
                suffix=".tmp",
                delete=False,
            ) as raw:
                tmp_path = Path(raw.name)
                with gzip.GzipFile(
                    filename=self.archive_name, mode="wb", fileobj=raw
                ) as gz, tarfile.open(fileobj=gz, mode="w", format=tarfile.PAX_FORMAT) as tar:
                    for current in self._ordered(snapshots, logs):
                        self._add_file(tar, current)
                    current = None

            os.chmod(tmp_path, ARCHIVE_MODE)
            os.replace(tmp_path, archive_path)

        except (OSError, tarfile.TarError) as e:
            self._discard(tmp_path)
            source = str(current.path) if current else None
            where = f" while adding {source}" if source else ""
            raise ArchiveWriteError(
                f"Failed to write archive {archive_path}{where}: {e}",
                archive_path=str(archive_path),
                source_path=source,
            ) from e

        logger.info(
            "Archive written",
            extra={
                "archive_path": str(archive_path.resolve()),
                "entries": self._entries_written,
                "source_bytes": self._bytes_written,
                "size_bytes": archive_path.stat().st_size,
            },
        )
        return archive_path

    def _ordered(
        self,
        snapshots: Sequence[PersistedFile],
        logs: Sequence[PersistedFile],
    ) -> Iterable[PersistedFile]:
        yield from snapshots
        yield from logs

    def _add_file(self, tar: tarfile.TarFile, persisted: PersistedFile) -> None:
        """Copy one file into the archive under its base name."""
        logger.info(f"Compressing {persisted.kind} {persisted.name} into {self.archive_path}")

        with open(persisted.path, "rb") as src:
            # fstat of the open handle: symlinks resolved, size fixed at open time
            info = tar.gettarinfo(arcname=persisted.name, fileobj=src)
            tar.addfile(info, src)

        self._entries_written += 1
        self._bytes_written += info.size

    def _discard(self, tmp_path: Path | None) -> None:
        if tmp_path is None:
            return
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove partial archive {tmp_path}: {e}")

    @property
    def stats(self) -> dict[str, int]:
        """Get writer statistics."""
        return {
            "entries_written": self._entries_written,
            "bytes_written": self._bytes_written,
        }


def write_archive(
    snapshots: Sequence[PersistedFile],
    logs: Sequence[PersistedFile],
    output_dir: str | Path = ".",
    archive_name: str = DEFAULT_ARCHIVE_NAME,
) -> Path:
    """Write snapshots then logs into output_dir/archive_name.

    Returns:
        Path of the written archive
    """
    return ArchiveWriter(output_dir, archive_name).write(snapshots, logs)
