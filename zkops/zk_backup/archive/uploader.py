"""
S3 upload of finished backup archives.

When an S3 bucket is configured, the archive written by ArchiveWriter is
copied to:

    s3://<bucket>/<prefix>/<archive_name>

The local archive is kept. There are no retries; the scheduler that
invokes zk-backup owns retry policy.

Invariants:
    - Only complete archives are uploaded (upload runs after the rename)
    - The object key mirrors the local archive name
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from aiobotocore.session import get_session

from ..errors import ArchiveUploadError

logger = logging.getLogger(__name__)


class ArchiveUploader:
    """Uploads a backup archive to S3.

    Attributes:
        s3_config: S3Config instance

    Example:
        >>> uploader = ArchiveUploader(config.s3)
        >>> key = await uploader.upload(Path("data.tar.gz"))
    """

    def __init__(self, s3_config: Any, client: Any = None) -> None:
        """Initialize the uploader.

        Args:
            s3_config: S3Config instance
            client: Already-open S3 client (owned by the caller)
        """
        self.s3_config = s3_config
        self._s3_client = client
        self._s3_ctx = None
        self._owns_client = client is None

    def object_key(self, archive_path: Path) -> str:
        prefix = self.s3_config.prefix.strip("/")
        if not prefix:
            return archive_path.name
        return f"{prefix}/{archive_path.name}"

    async def upload(self, archive_path: Path) -> str:
        """Upload the archive.

        Returns:
            S3 object key

        Raises:
            ArchiveUploadError: If reading the archive or the upload fails
        """
        key = self.object_key(archive_path)
        bucket = self.s3_config.bucket

        try:
            if self._s3_client is None:
                await self._init_s3_client()

            with open(archive_path, "rb") as f:
                await self._s3_client.put_object(
                    Bucket=bucket,
                    Key=key,
                    Body=f.read(),
                    ContentType="application/gzip",
                )
        except Exception as e:
            raise ArchiveUploadError(
                f"Failed to upload {archive_path} to s3://{bucket}/{key}: {e}",
                bucket=bucket,
                key=key,
            ) from e
        finally:
            await self._close_s3_client()

        logger.info(
            "Uploaded archive",
            extra={"bucket": bucket, "s3_key": key, "archive_path": str(archive_path)},
        )
        return key

    async def _init_s3_client(self) -> None:
        """Initialize S3 client."""
        session = get_session()

        client_kwargs = {
            "region_name": self.s3_config.region,
        }

        if self.s3_config.endpoint_url:
            client_kwargs["endpoint_url"] = self.s3_config.endpoint_url

        if self.s3_config.access_key_id:
            client_kwargs["aws_access_key_id"] = self.s3_config.access_key_id
            client_kwargs["aws_secret_access_key"] = self.s3_config.secret_access_key

        self._s3_ctx = session.create_client("s3", **client_kwargs)
        self._s3_client = await self._s3_ctx.__aenter__()

    async def _close_s3_client(self) -> None:
        """Close S3 client."""
        if self._owns_client and self._s3_ctx is not None:
            await self._s3_ctx.__aexit__(None, None, None)
            self._s3_ctx = None
            self._s3_client = None
