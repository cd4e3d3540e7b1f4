"""
S3-Compatible Object Storage Implementation.

Re-hosts generated images so published items do not depend on a vendor's
short-lived URLs. Works with AWS S3, MinIO, and other S3-compatible services.
"""

import logging
import secrets
import time
from typing import Dict, Optional

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from gist_agent.storage.interfaces import StorageError

logger = logging.getLogger(__name__)


def generate_object_key(prefix: str = "gist-images", extension: str = "png") -> str:
    """Unique object key of the form ``<prefix>/<millis>-<random>.<ext>``."""
    return f"{prefix}/{int(time.time() * 1000)}-{secrets.token_hex(4)}.{extension}"


class S3ObjectStorage:
    """
    S3-compatible implementation of ObjectStorage.

    Each call opens a short-lived client from a shared aioboto3 session; all
    calls are bounded by connect and read timeouts.
    """

    def __init__(
        self,
        bucket_name: str,
        endpoint_url: Optional[str] = None,
        public_base_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        region_name: str = "us-east-1",
        timeout_seconds: float = 15.0,
    ):
        """
        Initialize S3 object storage.

        Args:
            bucket_name: Bucket holding uploaded objects
            endpoint_url: Custom endpoint URL (for MinIO, etc.)
            public_base_url: Base URL objects are publicly served from;
                defaults to the virtual-hosted AWS URL of the bucket
            aws_access_key_id: Access key ID
            aws_secret_access_key: Secret access key
            region_name: Region name
            timeout_seconds: Connect/read timeout for each call
        """
        self.bucket_name = bucket_name
        self._endpoint_url = endpoint_url
        self._public_base_url = (
            public_base_url
            or f"https://{bucket_name}.s3.{region_name}.amazonaws.com"
        ).rstrip("/")
        self._access_key_id = aws_access_key_id
        self._secret_access_key = aws_secret_access_key
        self._region_name = region_name
        self._timeout_seconds = timeout_seconds
        self._session = aioboto3.Session()

    def _get_client_kwargs(self) -> Dict:
        """Get client configuration."""
        config = {
            "region_name": self._region_name,
            "aws_access_key_id": self._access_key_id,
            "aws_secret_access_key": self._secret_access_key,
            "config": Config(
                connect_timeout=self._timeout_seconds,
                read_timeout=self._timeout_seconds,
                retries={"max_attempts": 1},
            ),
        }

        if self._endpoint_url:
            config["endpoint_url"] = self._endpoint_url

        return config

    def public_url(self, key: str) -> str:
        return f"{self._public_base_url}/{key}"

    async def put(
        self,
        data: bytes,
        key: Optional[str] = None,
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload bytes and return their public URL.

        Args:
            data: Object body
            key: Object key; generated when omitted
            content_type: MIME type stored with the object

        Returns:
            Public URL of the object

        Raises:
            StorageError: If the upload fails
        """
        key = key or generate_object_key()
        try:
            async with self._session.client("s3", **self._get_client_kwargs()) as client:
                await client.put_object(
                    Bucket=self.bucket_name,
                    Key=key,
                    Body=data,
                    ContentType=content_type,
                )
        except (BotoCoreError, ClientError) as e:
            logger.error(f"Failed to upload object {key}: {e}")
            raise StorageError(f"Object upload failed: {e}")

        logger.debug(f"Uploaded object {key} to bucket {self.bucket_name}")
        return self.public_url(key)
