"""S3 Storage Adapter - Implementation of StorageProvider using boto3.

Provides storage operations for AWS S3, MinIO, and other S3-compatible
services, including server-side copies and presigned URLs. boto3 clients
are blocking; network calls run in worker threads (asyncio.to_thread).

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ...domain.documents.ports.object_storage_port import StorageProvider
from ...errors import StorageError

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


class S3StorageAdapter(StorageProvider):
    """S3-compatible storage adapter using boto3.

    Example:
        config = load_storage_config(settings)
        storage = S3StorageAdapter(
            endpoint_url=config.endpoint_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            bucket_name=config.bucket_name,
            region=config.region,
        )
        key = await storage.save(content, key, "application/pdf", {"correlation_id": "..."})
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        default_url_expiry_seconds: int = 3600,
    ):
        """Initialize S3 storage adapter.

        Args:
            endpoint_url: S3 endpoint URL (None for AWS S3, URL for MinIO)
            access_key: S3 access key ID
            secret_key: S3 secret access key
            bucket_name: S3 bucket name
            region: AWS region (default: 'us-east-1')
            default_url_expiry_seconds: Presigned URL lifetime when none is given

        Raises:
            StorageError: If S3 client initialization fails
        """
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
                # MinIO only accepts SigV4 presigned URLs
                config=Config(signature_version="s3v4"),
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except (BotoCoreError, ValueError) as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

        self.bucket_name = bucket_name
        self.region = region
        self.default_url_expiry_seconds = default_url_expiry_seconds

        logger.info(
            f"Initialized S3 storage adapter: bucket={bucket_name}, "
            f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
        )

    @property
    def name(self) -> str:
        return "s3"

    async def save(
        self,
        content: bytes,
        key: str,
        mime_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        try:
            await asyncio.to_thread(
                self.s3_client.put_object,
                Bucket=self.bucket_name,
                Key=key,
                Body=content,
                ContentType=mime_type,
                Metadata={k: str(v) for k, v in (metadata or {}).items()},
            )
        except ClientError as e:
            logger.error(f"S3 upload failed: key={key}, error={_error_code(e)}, message={e}")
            raise StorageError(f"Failed to upload file: {_error_code(e)}")
        except BotoCoreError as e:
            logger.error(f"S3 upload failed: key={key}, error={e}")
            raise StorageError(f"Failed to upload file: {e}")

        logger.info(f"Uploaded file: key={key}, size={len(content)}, mime_type={mime_type}")
        return key

    async def read(self, key: str) -> bytes:
        try:
            response = await asyncio.to_thread(self.s3_client.get_object, Bucket=self.bucket_name, Key=key)
            return await asyncio.to_thread(response["Body"].read)
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in _NOT_FOUND_CODES:
                raise FileNotFoundError(f"File not found: {key}")
            logger.error(f"S3 retrieval failed: key={key}, error={error_code}")
            raise StorageError(f"Failed to retrieve file: {error_code}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to retrieve file: {e}")

    async def delete(self, key: str) -> None:
        # S3 DeleteObject succeeds for missing keys
        try:
            await asyncio.to_thread(self.s3_client.delete_object, Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in _NOT_FOUND_CODES:
                return
            logger.error(f"S3 deletion failed: key={key}, error={error_code}")
            raise StorageError(f"Failed to delete file: {error_code}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to delete file: {e}")

        logger.info(f"Deleted file: key={key}")

    async def exists(self, key: str) -> bool:
        """Uses HEAD request (faster than GET)."""
        try:
            await asyncio.to_thread(self.s3_client.head_object, Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in _NOT_FOUND_CODES:
                return False
            logger.warning(f"Error checking file existence: key={key}, error={error_code}")
            raise StorageError(f"Failed to check file existence: {error_code}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to check file existence: {e}")

    async def list(self, prefix: str = "", max_keys: int = 1000) -> List[str]:
        def _collect() -> List[str]:
            keys: List[str] = []
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket_name, Prefix=prefix):
                for item in page.get("Contents", []):
                    keys.append(item["Key"])
                    if len(keys) >= max_keys:
                        return keys
            return keys

        try:
            return await asyncio.to_thread(_collect)
        except ClientError as e:
            raise StorageError(f"Failed to list files: {_error_code(e)}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to list files: {e}")

    async def copy(self, source_key: str, destination_key: str) -> str:
        try:
            await asyncio.to_thread(
                self.s3_client.copy_object,
                Bucket=self.bucket_name,
                Key=destination_key,
                CopySource={"Bucket": self.bucket_name, "Key": source_key},
            )
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in _NOT_FOUND_CODES:
                raise FileNotFoundError(f"File not found: {source_key}")
            raise StorageError(f"Failed to copy file: {error_code}")
        except BotoCoreError as e:
            raise StorageError(f"Failed to copy file: {e}")

        logger.info(f"Copied file: {source_key} -> {destination_key}")
        return destination_key

    async def get_url(self, key: str, expires_in_seconds: Optional[int] = None) -> str:
        """Generate a presigned GET URL.

        Raises:
            FileNotFoundError: If file doesn't exist
            StorageError: If URL generation fails
        """
        if not await self.exists(key):
            raise FileNotFoundError(f"File not found: {key}")

        expires_in = expires_in_seconds or self.default_url_expiry_seconds
        try:
            url = self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": key},
                ExpiresIn=expires_in,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Presigned URL generation failed: key={key}, error={e}")
            raise StorageError(f"Failed to generate presigned URL: {e}")

        logger.debug(f"Generated presigned URL: key={key}, expires_in={expires_in}s")
        return url

    async def verify_bucket_exists(self) -> bool:
        """Verify that the configured bucket exists.

        This should be called on application startup to fail fast if
        bucket doesn't exist.

        Raises:
            StorageError: If bucket check fails or bucket doesn't exist
        """
        try:
            await asyncio.to_thread(self.s3_client.head_bucket, Bucket=self.bucket_name)
            logger.info(f"Verified bucket exists: {self.bucket_name}")
            return True
        except ClientError as e:
            error_code = _error_code(e)
            if error_code in _NOT_FOUND_CODES:
                raise StorageError(
                    f"Bucket '{self.bucket_name}' does not exist. "
                    f"Create it first or update S3_BUCKET_NAME environment variable."
                )
            raise StorageError(f"Failed to verify bucket: {error_code}")
