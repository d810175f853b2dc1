"""
Error types for zk-backup.

This module defines all exception types raised during a backup run:
- BackupError: Base exception
- ConfigurationError: Invalid or incomplete run configuration
- MalformedNameError: Persisted file name does not follow prefix.hexZxid
- ArchiveWriteError: Failure while writing the output archive
- ArchiveUploadError: Failure while uploading the archive to S3

"Nothing to archive" is not an error and has no exception type.

Invariants:
    - All errors inherit from BackupError
    - Errors include context for debugging
    - Error messages are actionable
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class BackupError(Exception):
    """Base exception for all zk-backup errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "BACKUP_ERROR"
        self.details = details or {}


class ConfigurationError(BackupError):
    """Run configuration is invalid.

    Raised when:
    - A required directory path is missing or empty
    - A directory does not exist or is not readable
    - The retention count is not an integer >= 1
    - The properties file cannot be read
    """

    def __init__(
        self,
        message: str,
        setting: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details={"setting": setting},
        )
        self.setting = setting


class MalformedNameError(BackupError):
    """A file name does not match the prefix.hexZxid convention.

    Attributes:
        filename: The offending file name
        prefix: The prefix that was expected
    """

    def __init__(self, filename: str, prefix: str, reason: str) -> None:
        super().__init__(
            f"Malformed {prefix} file name '{filename}': {reason}",
            code="MALFORMED_NAME",
            details={"file_name": filename, "prefix": prefix},
        )
        self.filename = filename
        self.prefix = prefix


class ArchiveWriteError(BackupError):
    """Writing the archive failed.

    Raised when:
    - The output file cannot be created
    - A source file cannot be opened or read
    - The compressed stream cannot be written or closed
    """

    def __init__(
        self,
        message: str,
        archive_path: Optional[str] = None,
        source_path: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="ARCHIVE_WRITE_ERROR",
            details={"archive_path": archive_path, "source_path": source_path},
        )
        self.archive_path = archive_path
        self.source_path = source_path


class ArchiveUploadError(BackupError):
    """Uploading the archive to S3 failed."""

    def __init__(
        self,
        message: str,
        bucket: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="ARCHIVE_UPLOAD_ERROR",
            details={"bucket": bucket, "key": key},
        )
        self.bucket = bucket
        self.key = key
