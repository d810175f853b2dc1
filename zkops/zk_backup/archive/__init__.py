"""
Archive module for zk-backup.

This module bundles selected ZooKeeper files into a backup:
- ArchiveWriter: gzip-compressed tar of snapshots then logs
- ArchiveUploader: optional copy of the archive to S3

Invariants:
    - Archives are written fresh on every run, never appended to
    - Entry names are the original file names
"""

from .uploader import ArchiveUploader
from .writer import DEFAULT_ARCHIVE_NAME, ArchiveWriter, write_archive

__all__ = ["ArchiveUploader", "ArchiveWriter", "DEFAULT_ARCHIVE_NAME", "write_archive"]
