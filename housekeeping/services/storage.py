"""
Object storage for task images

``LocalObjectStore`` serves development from disk; deployments
upload to an S3 compatible bucket with ``S3ObjectStore``.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
import mimetypes
import uuid

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi.concurrency import run_in_threadpool
import structlog

from housekeeping.core.errors import UpstreamError

logger = structlog.get_logger(__name__)

_session = aioboto3.Session()


def object_key(content_type: str, filename: Optional[str] = None, prefix: str = "") -> str:
    """Random key under ``tasks/``, keeping an extension when one can be told"""
    extension = mimetypes.guess_extension(content_type) or ""
    if not extension and filename:
        extension = Path(filename).suffix.lower()
    key = f"tasks/{uuid.uuid4().hex}{extension}"
    prefix = prefix.strip("/")
    return f"{prefix}/{key}" if prefix else key


class ObjectStore(ABC):
    """Stores a blob and hands back a public URL for it"""

    @abstractmethod
    async def put(self, data: bytes, content_type: str, filename: Optional[str] = None) -> str:
        ...


class LocalObjectStore(ObjectStore):
    """Writes blobs under a directory served as static files"""

    def __init__(self, root: str, public_base_url: str, url_prefix: str = "/uploads"):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.url_prefix = url_prefix

    def _write(self, key: str, data: bytes) -> None:
        path = self.root / key
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def put(self, data: bytes, content_type: str, filename: Optional[str] = None) -> str:
        key = object_key(content_type, filename)
        try:
            await run_in_threadpool(self._write, key, data)
        except OSError as e:
            logger.error("object_store_write_failed", key=key, error=str(e))
            raise UpstreamError("No se pudo guardar la imagen") from e

        logger.info("object_stored", key=key, size=len(data), content_type=content_type)
        return f"{self.public_base_url}{self.url_prefix}/{key}"


class S3ObjectStore(ObjectStore):
    """Uploads public-read objects to an S3 compatible bucket

    URLs point at ``public_base_url`` (usually a CDN in front of the bucket).
    """

    def __init__(
        self,
        bucket: str,
        public_base_url: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        prefix: str = "",
        session: Optional[aioboto3.Session] = None,
    ):
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self.region = region
        self.endpoint_url = endpoint_url
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.prefix = prefix
        self.session = session or _session

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{key.lstrip('/')}"

    async def put(self, data: bytes, content_type: str, filename: Optional[str] = None) -> str:
        key = object_key(content_type, filename, self.prefix)
        try:
            async with self.session.client(
                "s3",
                region_name=self.region,
                endpoint_url=self.endpoint_url,
                aws_access_key_id=self.access_key_id,
                aws_secret_access_key=self.secret_access_key,
            ) as s3:
                await s3.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=data,
                    ContentType=content_type or "application/octet-stream",
                    ACL="public-read",
                )
        except (BotoCoreError, ClientError) as e:
            logger.error("object_store_upload_failed", bucket=self.bucket, key=key, error=str(e))
            raise UpstreamError("No se pudo guardar la imagen") from e

        logger.info("object_stored", bucket=self.bucket, key=key, size=len(data), content_type=content_type)
        return self.public_url(key)
