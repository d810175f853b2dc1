"""
Integration tests for full backup runs.

Tests cover:
- BackupTool end to end over a ZooKeeper directory layout
- The "nothing to archive" outcome
- CLI exit codes
"""

import json
import tarfile

import pytest

from zkops.zk_backup.archive import ArchiveUploader
from zkops.zk_backup.config import BackupConfig, S3Config
from zkops.zk_backup.errors import MalformedNameError
from zkops.zk_backup.main import EXIT_CONFIG_ERROR, EXIT_FAILURE, EXIT_OK, main
from zkops.zk_backup.tools import BackupTool


def archive_names(path):
    with tarfile.open(path, "r:gz") as tar:
        return tar.getnames()


@pytest.fixture
def ensemble(snap_dir, txn_dir, touch):
    """A server that has taken three snapshots and rolled four logs."""
    for zxid in (0x100000005, 0x100000008, 0x10000000a):
        touch(snap_dir, f"snapshot.{zxid:x}")
    for zxid in (0x100000001, 0x100000006, 0x100000009, 0x10000000c):
        touch(txn_dir, f"log.{zxid:x}")
    touch(snap_dir, "acceptedEpoch", b"1")
    touch(snap_dir, "currentEpoch", b"1")


class FakeS3Client:
    def __init__(self):
        self.keys = []

    async def put_object(self, Bucket, Key, Body, ContentType):
        self.keys.append((Bucket, Key))


class TestBackupTool:
    """Tests for BackupTool.run."""

    def test_backs_up_recent_snapshots_and_logs(self, ensemble, snap_dir, txn_dir, out_dir):
        config = BackupConfig(
            snap_dir=str(snap_dir), txn_dir=str(txn_dir), tar_dir=str(out_dir), snap_count=2
        )

        result = BackupTool(config).run()

        assert result.archived
        assert result.snapshots == ["snapshot.10000000a", "snapshot.100000008"]
        assert result.logs == ["log.100000006", "log.100000009", "log.10000000c"]
        assert archive_names(result.archive_path) == result.snapshots + result.logs
        assert result.s3_key is None

    def test_nothing_to_archive(self, snap_dir, txn_dir, out_dir):
        config = BackupConfig(snap_dir=str(snap_dir), txn_dir=str(txn_dir), tar_dir=str(out_dir))

        result = BackupTool(config).run()

        assert not result.archived
        assert result.archive_path is None
        assert list(out_dir.iterdir()) == []

    def test_logs_only(self, txn_dir, snap_dir, out_dir, touch):
        touch(txn_dir, "log.1")
        touch(txn_dir, "log.2")
        config = BackupConfig(snap_dir=str(snap_dir), txn_dir=str(txn_dir), tar_dir=str(out_dir))

        result = BackupTool(config).run()

        assert archive_names(result.archive_path) == ["log.1", "log.2"]

    def test_malformed_name_aborts(self, ensemble, snap_dir, txn_dir, out_dir, touch):
        touch(txn_dir, "log.oops")
        config = BackupConfig(snap_dir=str(snap_dir), txn_dir=str(txn_dir), tar_dir=str(out_dir))

        with pytest.raises(MalformedNameError):
            BackupTool(config).run()

        assert list(out_dir.iterdir()) == []

    def test_uploads_when_configured(self, ensemble, snap_dir, txn_dir, out_dir):
        client = FakeS3Client()
        s3 = S3Config(bucket="zk-backups-bucket", prefix="prod")
        config = BackupConfig(
            snap_dir=str(snap_dir), txn_dir=str(txn_dir), tar_dir=str(out_dir), s3=s3
        )

        result = BackupTool(config, uploader=ArchiveUploader(s3, client=client)).run()

        assert result.s3_key == "prod/data.tar.gz"
        assert client.keys == [("zk-backups-bucket", "prod/data.tar.gz")]
        assert result.archive_path.exists()


class TestMain:
    """Tests for the zk-backup command line."""

    def test_success(self, ensemble, snap_dir, txn_dir, out_dir, capsys):
        code = main(
            ["--snap-dir", str(snap_dir), "--txn-dir", str(txn_dir), "--tar-dir", str(out_dir)]
        )

        assert code == EXIT_OK
        assert "Backup completed successfully" in capsys.readouterr().out
        assert archive_names(out_dir / "data.tar.gz") == [
            "snapshot.10000000a",
            "log.100000009",
            "log.10000000c",
        ]

    def test_json_logging(self, ensemble, snap_dir, txn_dir, out_dir, capfd):
        code = main(
            [
                "--snap-dir", str(snap_dir),
                "--txn-dir", str(txn_dir),
                "--tar-dir", str(out_dir),
                "--log-format", "json",
            ]
        )

        assert code == EXIT_OK
        records = [json.loads(line) for line in capfd.readouterr().err.splitlines()]
        selected = next(r for r in records if r["message"].startswith("Selected "))
        assert selected["snapshots"] == ["snapshot.10000000a"]
        assert selected["logs"] == ["log.100000009", "log.10000000c"]
        assert selected["levelname"] == "INFO"
        assert selected["name"] == "zkops.zk_backup.tools.backup"

    def test_config_file(self, ensemble, snap_dir, txn_dir, out_dir, tmp_path):
        cfg = tmp_path / "zoo.cfg"
        cfg.write_text(f"tickTime=2000\ndataDir={snap_dir}\ndataLogDir={txn_dir}\n")

        code = main(["--config", str(cfg), "--tar-dir", str(out_dir), "--snap-num", "3"])

        assert code == EXIT_OK
        assert archive_names(out_dir / "data.tar.gz")[:3] == [
            "snapshot.10000000a",
            "snapshot.100000008",
            "snapshot.100000005",
        ]

    def test_nothing_to_archive(self, snap_dir, txn_dir, out_dir, capsys):
        code = main(
            ["--snap-dir", str(snap_dir), "--txn-dir", str(txn_dir), "--tar-dir", str(out_dir)]
        )

        assert code == EXIT_OK
        assert "nothing to archive" in capsys.readouterr().out
        assert not (out_dir / "data.tar.gz").exists()

    @pytest.mark.parametrize("count", ["0", "-1"])
    def test_invalid_snap_num(self, snap_dir, txn_dir, count, capsys):
        code = main(["--snap-dir", str(snap_dir), "--txn-dir", str(txn_dir), "--snap-num", count])

        assert code == EXIT_CONFIG_ERROR
        assert "snapNum" in capsys.readouterr().err

    def test_missing_directories(self, capsys):
        assert main([]) == EXIT_CONFIG_ERROR

    def test_nonexistent_directory(self, tmp_path, txn_dir):
        code = main(["--snap-dir", str(tmp_path / "missing"), "--txn-dir", str(txn_dir)])

        assert code == EXIT_CONFIG_ERROR

    def test_malformed_name(self, ensemble, snap_dir, txn_dir, out_dir, touch):
        touch(snap_dir, "snapshot.zz")
        argv = ["--snap-dir", str(snap_dir), "--txn-dir", str(txn_dir), "--tar-dir", str(out_dir)]

        assert main(argv) == EXIT_FAILURE
        assert main(argv + ["--on-malformed", "skip"]) == EXIT_OK

    def test_unwritable_output(self, ensemble, snap_dir, txn_dir, tmp_path):
        code = main(
            [
                "--snap-dir", str(snap_dir),
                "--txn-dir", str(txn_dir),
                "--tar-dir", str(tmp_path / "no-such-dir"),
            ]
        )

        assert code == EXIT_FAILURE
