"""Panel artifact storage for local filesystem and S3-compatible buckets.

The store is the durable source of truth for which panels exist; the job
registry only sits in front of it.
"""

from abc import ABC, abstractmethod
from pathlib import Path

import aioboto3
from botocore.client import Config
from botocore.exceptions import ClientError
from loguru import logger

from comics.contracts import PanelIdentity

NO_CACHE = "no-cache, no-store, must-revalidate, max-age=0"


def object_key(identity: PanelIdentity, prefix: str = "") -> str:
    """``[prefix/]video/style/MM-SS.jpg`` with exactly one slash after the prefix."""
    prefix = prefix.rstrip("/")
    return f"{prefix}/{identity.object_path}" if prefix else identity.object_path


class ArtifactStore(ABC):
    """Key-addressed blob store for generated panels."""

    @abstractmethod
    def url_for(self, key: str) -> str:
        """Public URL of ``key`` (whether or not it exists)."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Return True if ``key`` is stored."""

    @abstractmethod
    async def put(self, key: str, data: bytes, content_type: str = "image/jpeg") -> str:
        """Store ``data`` under ``key``, overwriting, and return its public URL."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete ``key``. Deleting a missing key is not an error."""


class LocalArtifactStore(ArtifactStore):
    """Store panels on local filesystem, served by gateway API."""

    def __init__(self, base_path: Path, public_url: str = "/v1/files"):
        self.base_path = base_path
        self.public_url = public_url.rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if not path.is_relative_to(self.base_path.resolve()):
            raise ValueError(f"Key escapes store root: {key!r}")
        return path

    def url_for(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    async def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    async def put(self, key: str, data: bytes, content_type: str = "image/jpeg") -> str:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        return self.url_for(key)

    async def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class S3ArtifactStore(ArtifactStore):
    """Store panels in an S3 bucket, optionally behind a CDN / custom domain."""

    def __init__(
        self,
        bucket_name: str,
        region: str | None,
        access_key_id: str | None,
        secret_access_key: str | None,
        endpoint_url: str | None = None,
        public_url: str | None = None,
    ):
        self.bucket_name = bucket_name
        self.region = region
        self.public_url = public_url.rstrip("/") if public_url else None
        self._session = aioboto3.Session()
        self._client_config = {
            "endpoint_url": endpoint_url,
            "aws_access_key_id": access_key_id,
            "aws_secret_access_key": secret_access_key,
            "region_name": region,
            "config": Config(signature_version="s3v4"),
        }

    def url_for(self, key: str) -> str:
        if self.public_url:
            return f"{self.public_url}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    async def exists(self, key: str) -> bool:
        async with self._session.client("s3", **self._client_config) as s3:
            try:
                await s3.head_object(Bucket=self.bucket_name, Key=key)
                return True
            except ClientError as e:
                code = e.response.get("Error", {}).get("Code")
                http_status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
                if code in ("404", "NotFound", "NoSuchKey") or http_status == 404:
                    return False
                # Unknown failures read as absent; a later POST surfaces real storage problems
                logger.warning(f"head_object failed for {key}: {e}")
                return False

    async def put(self, key: str, data: bytes, content_type: str = "image/jpeg") -> str:
        async with self._session.client("s3", **self._client_config) as s3:
            await s3.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=data,
                ContentType=content_type,
                CacheControl=NO_CACHE,
            )
        logger.debug(f"Stored {len(data)} bytes at s3://{self.bucket_name}/{key}")
        return self.url_for(key)

    async def delete(self, key: str) -> None:
        async with self._session.client("s3", **self._client_config) as s3:
            await s3.delete_object(Bucket=self.bucket_name, Key=key)
