"""
zk-backup - Main entry point.

Archives the most recent ZooKeeper snapshots together with the
transaction logs needed to replay them.

Usage:
    zk-backup --config /etc/zookeeper/zoo.cfg --tar-dir /backups --snap-num 2
    zk-backup --snap-dir /data/zk --txn-dir /datalog/zk

Settings not given on the command line are read from environment
variables and then from the properties file. See config.py.

Exit codes:
    0 - Archive written, or nothing to archive
    1 - Backup failed
    2 - Invalid configuration
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import json_log_formatter

from ._version import __version__
from .config import BackupConfig, ObservabilityConfig
from .errors import BackupError, ConfigurationError
from .tools import BackupTool

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def setup_logging(config: ObservabilityConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Observability configuration
    """
    level = getattr(logging, config.log_level.upper(), logging.INFO)

    if config.log_format == "json":
        formatter = json_log_formatter.VerboseJSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("aiobotocore").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="zk-backup",
        description="Archive recent ZooKeeper snapshots and the transaction logs they need",
    )
    parser.add_argument("--config", dest="config_path", help="Path to the zoo.cfg file")
    parser.add_argument("--snap-dir", help="Snapshot directory (overrides dataDir)")
    parser.add_argument("--txn-dir", help="Transaction log directory (overrides dataLogDir)")
    parser.add_argument("--tar-dir", help="Directory to write the archive into (default: ./)")
    parser.add_argument(
        "--snap-num", dest="snap_count", help="Number of recent snapshots to keep (default: 1)"
    )
    parser.add_argument("--archive-name", help="Archive file name (default: data.tar.gz)")
    parser.add_argument(
        "--on-malformed",
        choices=["abort", "skip"],
        help="What to do with files whose zxid cannot be parsed (default: abort)",
    )
    parser.add_argument("--s3-bucket", help="Upload the archive to this S3 bucket")
    parser.add_argument("--s3-prefix", help="Key prefix for the uploaded archive")
    parser.add_argument("--log-level", help="Logging level (default: INFO)")
    parser.add_argument("--log-format", choices=["text", "json"], help="Log format")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Map parsed arguments onto BackupConfig.resolve overrides."""
    overrides = {
        "config_path": args.config_path,
        "snap_dir": args.snap_dir,
        "txn_dir": args.txn_dir,
        "tar_dir": args.tar_dir,
        "snap_count": args.snap_count,
        "archive_name": args.archive_name,
        "on_malformed": args.on_malformed,
        "s3_bucket": args.s3_bucket,
        "s3_prefix": args.s3_prefix,
        "log_level": "DEBUG" if args.verbose else args.log_level,
        "log_format": args.log_format,
    }
    return {k: v for k, v in overrides.items() if v is not None}


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the backup tool."""
    args = build_parser().parse_args(argv)

    try:
        config = BackupConfig.resolve(overrides_from_args(args))
    except ConfigurationError as e:
        print(f"Invalid configuration: {e.message}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    setup_logging(config.observability)
    config.log_config()

    try:
        result = BackupTool(config).run()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e.message}", extra={"code": e.code, **e.details})
        return EXIT_CONFIG_ERROR
    except BackupError as e:
        logger.error(f"Backup failed: {e.message}", extra={"code": e.code, **e.details})
        return EXIT_FAILURE

    if not result.archived:
        print("No transaction log files found, nothing to archive")
        return EXIT_OK

    print("Backup completed successfully")
    print(f"  Archive: {result.archive_path}")
    print(f"  Snapshots: {len(result.snapshots)}")
    print(f"  Transaction logs: {len(result.logs)}")
    if result.s3_key:
        print(f"  Uploaded: s3://{config.s3.bucket}/{result.s3_key}")
    print(f"  Duration: {result.duration_ms}ms")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
