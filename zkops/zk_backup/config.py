"""
Configuration management for zk-backup.

A backup run is configured from three layers, lowest precedence first:
1. A ZooKeeper properties file (zoo.cfg): dataDir and dataLogDir
2. Environment variables (ZK_BACKUP_*, S3_*, LOG_*)
3. Command-line flags

The layers are merged once at startup into an immutable BackupConfig that
is passed explicitly to the selection and archive components.

Invariants:
    - An empty value never overrides a value from a lower layer
    - The retention count is validated before any file is read
    - Secrets are never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that keep existing invocations working
    - Keep properties keys identical to ZooKeeper's (dataDir, dataLogDir)
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .archive.writer import DEFAULT_ARCHIVE_NAME
from .errors import ConfigurationError
from .persistence.store import MalformedNamePolicy

logger = logging.getLogger(__name__)

SNAPSHOT_DIR_KEY = "dataDir"
TXN_DIR_KEY = "dataLogDir"

ENV_CONFIG_PATH = "ZK_BACKUP_CONFIG_PATH"
ENV_SNAP_DIR = "ZK_BACKUP_SNAP_DIR"
ENV_TXN_DIR = "ZK_BACKUP_TXN_DIR"
ENV_TAR_DIR = "ZK_BACKUP_TAR_DIR"
ENV_SNAP_NUM = "ZK_BACKUP_SNAP_NUM"
ENV_ARCHIVE_NAME = "ZK_BACKUP_ARCHIVE_NAME"
ENV_ON_MALFORMED = "ZK_BACKUP_ON_MALFORMED"

_PROPERTY_RE = re.compile(r"((?:\\.|[^\s=:\\])+)\s*[=:]?\s*(.*)", re.DOTALL)
_ESCAPE_RE = re.compile(r"\\(u[0-9a-fA-F]{4}|.)", re.DOTALL)
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


@dataclass(frozen=True)
class S3Config:
    """S3 configuration for archive upload.

    Upload is disabled when no bucket is set.

    Attributes:
        bucket: S3 bucket name
        prefix: Key prefix for uploaded archives
        region: AWS region
        endpoint_url: Custom endpoint URL (for MinIO)
        access_key_id: AWS access key ID (optional, uses AWS credential chain)
        secret_access_key: AWS secret access key (optional)
    """

    bucket: str | None = None
    prefix: str = "zk-backups"
    region: str = "us-east-1"
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.bucket)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> S3Config:
        """Load configuration from environment variables."""
        environ = os.environ if environ is None else environ
        return cls(
            bucket=environ.get("S3_BUCKET") or None,
            prefix=environ.get("S3_PREFIX", "zk-backups"),
            region=environ.get("S3_REGION", environ.get("AWS_REGION", "us-east-1")),
            endpoint_url=environ.get("S3_ENDPOINT") or None,
            access_key_id=environ.get("AWS_ACCESS_KEY_ID"),
            secret_access_key=environ.get("AWS_SECRET_ACCESS_KEY"),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "text"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        environ = os.environ if environ is None else environ
        return cls(
            log_level=environ.get("LOG_LEVEL", "INFO"),
            log_format=environ.get("LOG_FORMAT", "text"),
        )


@dataclass(frozen=True)
class BackupConfig:
    """Complete configuration of one backup run.

    Attributes:
        snap_dir: ZooKeeper dataDir (snapshots)
        txn_dir: ZooKeeper dataLogDir (transaction logs)
        tar_dir: Directory the archive is written into
        snap_count: Number of most recent snapshots to keep (>= 1)
        archive_name: File name of the archive
        on_malformed: Policy for prefixed files with an unreadable zxid
        config_path: Properties file the directories were read from, if any
        s3: S3 upload configuration
        observability: Logging configuration
    """

    snap_dir: str = ""
    txn_dir: str = ""
    tar_dir: str = "./"
    snap_count: int = 1
    archive_name: str = DEFAULT_ARCHIVE_NAME
    on_malformed: MalformedNamePolicy = MalformedNamePolicy.ABORT
    config_path: str | None = None
    s3: S3Config = field(default_factory=S3Config)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> BackupConfig:
        """Load configuration from the properties file and environment variables.

        Raises:
            ConfigurationError: If required configuration is missing or invalid.
        """
        return cls.resolve()

    @classmethod
    def resolve(
        cls,
        overrides: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> BackupConfig:
        """Merge properties file, environment and explicit overrides.

        Args:
            overrides: Values from the command line, keyed like the
                BackupConfig fields (plus "config_path"); empty values are ignored
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Validated BackupConfig

        Raises:
            ConfigurationError: If required configuration is missing or invalid.
        """
        environ = os.environ if environ is None else environ
        settings: Dict[str, Any] = {}

        env_settings = {
            "config_path": environ.get(ENV_CONFIG_PATH),
            "snap_dir": environ.get(ENV_SNAP_DIR),
            "txn_dir": environ.get(ENV_TXN_DIR),
            "tar_dir": environ.get(ENV_TAR_DIR),
            "snap_count": environ.get(ENV_SNAP_NUM),
            "archive_name": environ.get(ENV_ARCHIVE_NAME),
            "on_malformed": environ.get(ENV_ON_MALFORMED),
        }
        for layer in (env_settings, overrides or {}):
            settings.update({k: v for k, v in layer.items() if _is_set(v)})

        # Count first: a bad count must fail before the properties file is read
        snap_count = _parse_count(settings.get("snap_count", 1))
        on_malformed = _parse_policy(settings.get("on_malformed", MalformedNamePolicy.ABORT))

        config_path = settings.get("config_path")
        file_settings: Dict[str, str] = {}
        if config_path:
            properties = load_properties(config_path)
            if _is_set(properties.get(SNAPSHOT_DIR_KEY)):
                file_settings["snap_dir"] = properties[SNAPSHOT_DIR_KEY]
            if _is_set(properties.get(TXN_DIR_KEY)):
                file_settings["txn_dir"] = properties[TXN_DIR_KEY]

        def pick(name: str, default: str) -> str:
            return str(settings.get(name, file_settings.get(name, default))).strip()

        config = cls(
            snap_dir=pick("snap_dir", ""),
            txn_dir=pick("txn_dir", ""),
            tar_dir=pick("tar_dir", "./"),
            snap_count=snap_count,
            archive_name=pick("archive_name", DEFAULT_ARCHIVE_NAME),
            on_malformed=on_malformed,
            config_path=str(config_path) if config_path else None,
            s3=replace(S3Config.from_env(environ), **_section(settings, "s3_")),
            observability=replace(
                ObservabilityConfig.from_env(environ), **_section(settings, "log_", keep_prefix=True)
            ),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ConfigurationError: If configuration is invalid.
        """
        if not self.snap_dir:
            raise ConfigurationError("snapDir cannot be empty", setting="snap_dir")
        if not self.txn_dir:
            raise ConfigurationError("txnDir cannot be empty", setting="txn_dir")
        if self.snap_count < 1:
            raise ConfigurationError(
                "snapNum should be greater than or equal to 1", setting="snap_count"
            )
        if not self.archive_name or os.sep in self.archive_name or self.archive_name in (".", ".."):
            raise ConfigurationError(
                f"archive name must be a plain file name: {self.archive_name!r}",
                setting="archive_name",
            )
        if self.observability.log_format not in ("json", "text"):
            raise ConfigurationError(
                f"Invalid log format '{self.observability.log_format}'. Must be one of: json, text",
                setting="log_format",
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Backup configuration loaded",
            extra={
                "config_path": self.config_path,
                "snap_dir": self.snap_dir,
                "txn_dir": self.txn_dir,
                "tar_dir": self.tar_dir,
                "snap_count": self.snap_count,
                "archive_name": self.archive_name,
                "on_malformed": self.on_malformed.value,
                "s3_bucket": self.s3.bucket,
            },
        )


def load_properties(path: str | Path) -> Dict[str, str]:
    """Read a Java-style properties file such as zoo.cfg.

    Raises:
        ConfigurationError: If the file cannot be read
    """
    try:
        # java.util.Properties reads ISO-8859-1
        text = Path(path).read_text(encoding="latin-1")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read config file {path}: {e.strerror or e}", setting="config_path"
        ) from e
    return parse_properties(text)


def parse_properties(text: str) -> Dict[str, str]:
    """Parse properties text into a dict with trimmed keys and values.

    Supports "=", ":" and whitespace separators, "#" and "!" comment lines,
    and backslash line continuations.
    """
    properties: Dict[str, str] = {}
    lines = iter(text.splitlines())

    for raw in lines:
        line = raw.strip()
        if not line or line[0] in "#!":
            continue

        while _continues(line):
            line = line[:-1] + next(lines, "").lstrip()

        match = _PROPERTY_RE.match(line)
        if not match:
            continue
        key = _unescape(match.group(1)).strip()
        value = _unescape(match.group(2)).strip()
        properties[key] = value

    return properties


def _continues(line: str) -> bool:
    trailing = len(line) - len(line.rstrip("\\"))
    return trailing % 2 == 1


def _unescape(text: str) -> str:
    def expand(match: re.Match) -> str:
        escaped = match.group(1)
        if len(escaped) == 5:
            return chr(int(escaped[1:], 16))
        return _ESCAPES.get(escaped, escaped)

    return _ESCAPE_RE.sub(expand, text)


def _is_set(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def _parse_count(value: Any) -> int:
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"snapNum must be an integer, got {value!r}", setting="snap_count"
        ) from None
    if count < 1:
        raise ConfigurationError(
            "snapNum should be greater than or equal to 1", setting="snap_count"
        )
    return count


def _parse_policy(value: Any) -> MalformedNamePolicy:
    if isinstance(value, MalformedNamePolicy):
        return value
    try:
        return MalformedNamePolicy(str(value).strip().lower())
    except ValueError:
        raise ConfigurationError(
            f"Invalid malformed-name policy '{value}'. Must be one of: abort, skip",
            setting="on_malformed",
        ) from None


def _section(
    settings: Mapping[str, Any], prefix: str, keep_prefix: bool = False
) -> Dict[str, Any]:
    """Pick the overrides that belong to one nested config section."""
    return {
        (key if keep_prefix else key[len(prefix):]): value
        for key, value in settings.items()
        if key.startswith(prefix)
    }
