"""
Async base class for S3-compatible object storage systems.
"""

import aioboto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, ReadTimeoutError
import logging
import asyncio
from typing import List, Optional, Tuple
from urllib3.exceptions import IncompleteRead
from configuration import (
    CONNECT_TIMEOUT_SECONDS,
    LIST_PAGE_SIZE,
    READ_CHUNK_BYTES,
    READ_TIMEOUT_SECONDS,
    REQUEST_TIMEOUT_SECONDS,
    THROTTLING_STATUS_CODES,
)
from common.errors import OperationError, ProvisioningError

# aiohttp is a required dependency of aioboto3, so it's always available
from aiohttp.client_exceptions import ClientPayloadError

logger = logging.getLogger(__name__)

STORAGE_ERRORS = (ClientError, BotoCoreError, ReadTimeoutError, IncompleteRead, ClientPayloadError)


class ObjectStorageSystem:
    """Async S3 client wrapper for a single bucket."""

    def __init__(self, endpoint: str, bucket_name: str, credentials: dict, concurrency: int = 1):
        self.endpoint = endpoint or None
        self.bucket_name = bucket_name
        self.credentials = credentials
        self.concurrency = concurrency

        # Single source of truth for config
        self._config = self._create_config()

        # Setup session
        self.session = aioboto3.Session(
            aws_access_key_id=credentials.get("access_key_id"),
            aws_secret_access_key=credentials.get("secret_access_key"),
            region_name=credentials.get("region_name", "us-east-1"),
        )

        self.client = None

        logger.info(
            f"Initialized async storage for {endpoint or 'default AWS endpoint'} "
            f"bucket={bucket_name} (max_pool_connections={self._config.max_pool_connections})"
        )

    def _create_config(self) -> Config:
        """Create boto3 config sized to the worker pool."""
        # One connection per worker plus headroom for listing and cleanup
        pool_size = min(self.concurrency + 10, 2000)

        config = Config(
            max_pool_connections=pool_size,

            # Connection timeouts
            connect_timeout=CONNECT_TIMEOUT_SECONDS,
            read_timeout=READ_TIMEOUT_SECONDS,

            # Adaptive retry strategy
            retries={
                'max_attempts': 3,
                'mode': 'adaptive',
            },

            s3={
                'addressing_style': 'path',  # Works with MinIO/RGW/R2 alike
            },

            # TCP keep-alive
            tcp_keepalive=True,
        )

        logger.info(f"Configured connection pool: {config.max_pool_connections} connections")
        return config

    async def __aenter__(self):
        """Async context manager entry."""
        self.client = await self.session.client(
            "s3",
            endpoint_url=self.endpoint,
            config=self._config,
        ).__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.client:
            await self.client.__aexit__(exc_type, exc_val, exc_tb)
            self.client = None

    def _require_client(self):
        if not self.client:
            raise RuntimeError("Storage client not initialized. Use async context manager.")

    def _operation_error(self, action: str, key: Optional[str], error: Exception) -> OperationError:
        """Translate a client-side exception into an OperationError, logging throttling loudly."""
        target = f"{self.bucket_name}/{key}" if key else self.bucket_name

        if isinstance(error, asyncio.TimeoutError):
            logger.warning(f"Timeout during {action} of {target}")
            return OperationError(f"{action} {target} timed out", key=key)

        if isinstance(error, ClientError):
            error_code = error.response.get('Error', {}).get('Code', 'Unknown')
            status_code = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode', 0)

            if status_code in THROTTLING_STATUS_CODES:
                logger.error(
                    f"🚨 THROTTLING DETECTED: {error_code} (HTTP {status_code}) "
                    f"during {action} of {target}"
                )
            else:
                logger.warning(
                    f"S3 error {error_code} (HTTP {status_code}) during {action} of {target}"
                )
            return OperationError(
                f"{action} {target} failed: {error_code} (HTTP {status_code})",
                key=key,
                status_code=status_code,
            )

        if isinstance(error, (IncompleteRead, ClientPayloadError)):
            logger.warning(
                f"Incomplete payload during {action} of {target}: "
                f"Connection closed before all data received"
            )
        else:
            logger.warning(f"{type(error).__name__} during {action} of {target}: {error}")
        return OperationError(f"{action} {target} failed: {error}", key=key)

    async def head_bucket(self) -> bool:
        """Check whether the bucket exists. Any failure counts as absent."""
        self._require_client()
        try:
            await asyncio.wait_for(
                self.client.head_bucket(Bucket=self.bucket_name),
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            return True
        except (asyncio.TimeoutError,) + STORAGE_ERRORS as e:
            logger.info(f"Bucket {self.bucket_name} not reachable via HEAD: {e}")
            return False

    async def create_bucket(self) -> None:
        """Create the bucket.

        Raises:
            ProvisioningError: If the bucket could not be created
        """
        self._require_client()
        try:
            await asyncio.wait_for(
                self.client.create_bucket(Bucket=self.bucket_name),
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            logger.info(f"✓ Created bucket: {self.bucket_name}")
        except (asyncio.TimeoutError,) + STORAGE_ERRORS as e:
            raise ProvisioningError(f"Failed to create bucket {self.bucket_name}: {e}") from e

    async def put_object(self, key: str, body: bytes) -> int:
        """Upload an object. Returns the number of bytes sent.

        Raises:
            OperationError: If the upload failed
        """
        self._require_client()
        try:
            await self.client.put_object(Bucket=self.bucket_name, Key=key, Body=body)
            return len(body)
        except STORAGE_ERRORS as e:
            raise self._operation_error("PUT", key, e) from e

    async def get_object(self, key: str) -> int:
        """Download an object, draining the whole body. Returns the number of bytes read.

        The body is discarded chunk by chunk; the call only returns once the
        transfer is complete.

        Raises:
            OperationError: If the download failed
        """
        self._require_client()
        try:
            response = await self.client.get_object(Bucket=self.bucket_name, Key=key)
            total = 0
            async with response["Body"] as stream:
                while True:
                    chunk = await stream.read(READ_CHUNK_BYTES)
                    if not chunk:
                        break
                    total += len(chunk)

            expected = response.get("ContentLength")
            if expected is not None and total != expected:
                raise OperationError(
                    f"GET {self.bucket_name}/{key} incomplete: expected {expected} bytes, got {total}",
                    key=key,
                )
            return total
        except STORAGE_ERRORS as e:
            raise self._operation_error("GET", key, e) from e

    async def delete_object(self, key: str) -> None:
        """Delete an object.

        Raises:
            OperationError: If the delete failed
        """
        self._require_client()
        try:
            await asyncio.wait_for(
                self.client.delete_object(Bucket=self.bucket_name, Key=key),
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except (asyncio.TimeoutError,) + STORAGE_ERRORS as e:
            raise self._operation_error("DELETE", key, e) from e

    async def list_objects_page(
        self, prefix: str = "", continuation_token: Optional[str] = None, max_keys: int = LIST_PAGE_SIZE
    ) -> Tuple[List[str], Optional[str]]:
        """List one page of keys under a prefix.

        Returns:
            Tuple of (keys, next continuation token or None when the listing is exhausted)

        Raises:
            OperationError: If the listing failed
        """
        self._require_client()
        list_args = {
            "Bucket": self.bucket_name,
            "Prefix": prefix,
            "MaxKeys": max_keys,
        }
        if continuation_token:
            list_args["ContinuationToken"] = continuation_token

        try:
            response = await asyncio.wait_for(
                self.client.list_objects_v2(**list_args),
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
        except (asyncio.TimeoutError,) + STORAGE_ERRORS as e:
            raise self._operation_error("LIST", prefix or None, e) from e

        keys = [obj["Key"] for obj in response.get("Contents", [])]
        next_token = response.get("NextContinuationToken") if response.get("IsTruncated") else None
        return keys, next_token
