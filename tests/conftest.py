"""
Shared fixtures for zk-backup tests.

ZooKeeper directory layouts are built in temporary directories:

    <tmp>/data/version-2/snapshot.<zxid>
    <tmp>/datalog/version-2/log.<zxid>
"""

import logging
from pathlib import Path
from typing import Callable

import pytest

_ENV_VARS = [
    "ZK_BACKUP_CONFIG_PATH",
    "ZK_BACKUP_SNAP_DIR",
    "ZK_BACKUP_TXN_DIR",
    "ZK_BACKUP_TAR_DIR",
    "ZK_BACKUP_SNAP_NUM",
    "ZK_BACKUP_ARCHIVE_NAME",
    "ZK_BACKUP_ON_MALFORMED",
    "S3_BUCKET",
    "S3_PREFIX",
    "S3_ENDPOINT",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's environment out of configuration resolution."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def snap_dir(tmp_path) -> Path:
    """ZooKeeper dataDir with its version-2 sub-directory."""
    path = tmp_path / "data"
    (path / "version-2").mkdir(parents=True)
    return path


@pytest.fixture
def txn_dir(tmp_path) -> Path:
    """ZooKeeper dataLogDir with its version-2 sub-directory."""
    path = tmp_path / "datalog"
    (path / "version-2").mkdir(parents=True)
    return path


@pytest.fixture
def out_dir(tmp_path) -> Path:
    """Directory archives are written into."""
    path = tmp_path / "out"
    path.mkdir()
    return path


@pytest.fixture
def touch() -> Callable[..., Path]:
    """Create a persisted file in <directory>/version-2.

    Content defaults to a recognizable payload derived from the name.
    """

    def _touch(directory: Path, name: str, content: bytes | None = None) -> Path:
        path = directory / "version-2" / name
        path.write_bytes(content if content is not None else f"payload of {name}".encode())
        return path

    return _touch


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo setup_logging() calls made by CLI tests."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
