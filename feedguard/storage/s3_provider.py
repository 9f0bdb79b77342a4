"""
S3 storage provider implementation using boto3.

Supports:
- AWS S3
- S3-compatible services (MinIO, Cloudflare R2, etc.)

A single put_object replaces the whole object, so records are never torn.
"""

import logging
import os
from datetime import datetime, timezone
from typing import Optional, Dict

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from feedguard.storage.base import (
    ContentType,
    StorageError,
    StorageMetadata,
    StorageObject,
    StorageProvider,
    compute_content_hash,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = ("NoSuchKey", "404", "NotFound")


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


class S3StorageProvider(StorageProvider):
    """
    S3/S3-compatible storage provider.

    Configuration via environment:
    - S3_BUCKET: Bucket name (required)
    - S3_ENDPOINT_URL: Custom endpoint for S3-compatible services
    - S3_REGION: AWS region (default: us-east-1)
    - AWS_ACCESS_KEY_ID / AWS_SECRET_ACCESS_KEY: AWS credentials
    """

    def __init__(
        self,
        bucket: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        region: Optional[str] = None,
        client=None,
    ):
        """
        Initialize S3 provider.

        Args:
            bucket: S3 bucket name (or S3_BUCKET env var)
            endpoint_url: Custom endpoint for S3-compatible services
            region: AWS region
            client: Pre-built boto3 client (tests inject a mock here)
        """
        self._bucket = bucket or os.getenv("S3_BUCKET")
        if not self._bucket:
            raise ValueError("S3 bucket required. Set S3_BUCKET env var or pass bucket.")

        self._endpoint_url = endpoint_url or os.getenv("S3_ENDPOINT_URL")
        self._region = region or os.getenv("S3_REGION", "us-east-1")

        if client is None:
            config = Config(
                retries={"max_attempts": 3, "mode": "adaptive"},
                connect_timeout=5,
                read_timeout=10,
            )
            client = boto3.client(
                "s3",
                endpoint_url=self._endpoint_url,
                region_name=self._region,
                config=config,
            )
        self._client = client

        logger.info(f"S3 storage initialized: bucket={self._bucket}")

    @property
    def name(self) -> str:
        return "s3"

    @property
    def bucket(self) -> str:
        return self._bucket

    def upload(
        self,
        key: str,
        content: bytes,
        content_type: ContentType = ContentType.APPLICATION_JSON,
        metadata: Optional[Dict[str, str]] = None,
    ) -> StorageMetadata:
        """Write content to S3."""
        content_hash = compute_content_hash(content)
        s3_metadata = dict(metadata or {})
        s3_metadata["content-hash"] = content_hash

        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=content,
                ContentType=content_type.value,
                Metadata=s3_metadata,
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"S3 upload failed for {key}: {e}") from e

        logger.debug(f"Uploaded to S3: {key} ({len(content)} bytes)")

        return StorageMetadata(
            uri=key,
            content_hash=content_hash,
            content_type=content_type,
            size_bytes=len(content),
            uploaded_at=datetime.now(timezone.utc),
            custom_metadata=s3_metadata,
        )

    def download(self, key: str) -> Optional[StorageObject]:
        """Read content from S3."""
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            content = response["Body"].read()
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                logger.debug(f"S3 object not found: {key}")
                return None
            raise StorageError(f"S3 download failed for {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"S3 download failed for {key}: {e}") from e

        s3_metadata = response.get("Metadata", {})
        try:
            content_type = ContentType(response.get("ContentType", ContentType.APPLICATION_JSON.value))
        except ValueError:
            content_type = ContentType.APPLICATION_JSON

        metadata = StorageMetadata(
            uri=key,
            content_hash=s3_metadata.get("content-hash", ""),
            content_type=content_type,
            size_bytes=len(content),
            uploaded_at=response.get("LastModified", datetime.now(timezone.utc)),
            custom_metadata=s3_metadata,
        )
        return StorageObject(content=content, metadata=metadata)
