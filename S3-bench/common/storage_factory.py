"""
Factory module for creating storage system instances.
"""

import logging

# CRITICAL: Suppress boto3/botocore logging BEFORE importing any boto3-related modules
logging.getLogger('botocore').setLevel(logging.CRITICAL)
logging.getLogger('botocore.credentials').setLevel(logging.CRITICAL)
logging.getLogger('boto3').setLevel(logging.CRITICAL)
logging.getLogger('aioboto3').setLevel(logging.CRITICAL)
logging.getLogger('aiobotocore').setLevel(logging.CRITICAL)
logging.getLogger('urllib3').setLevel(logging.CRITICAL)

from systems.r2 import R2System
from systems.aws import AWSSystem
from configuration import (
    R2_ACCESS_KEY_ID,
    R2_SECRET_ACCESS_KEY,
    AWS_ACCESS_KEY_ID,
    AWS_SECRET_ACCESS_KEY,
    AWS_REGION,
)

logger = logging.getLogger(__name__)


def create_storage_system(
    storage_type: str = "s3",
    endpoint: str = None,
    bucket_name: str = None,
    access_key: str = None,
    secret_key: str = None,
    region: str = None,
    concurrency: int = 1,
):
    """Create and return the appropriate storage system based on type.

    Explicit arguments win over the environment-driven configuration.

    Args:
        storage_type: Storage type ('s3' for any S3-compatible endpoint, or 'r2')
        endpoint: Endpoint URL (default: S3_ENDPOINT / R2_ENDPOINT)
        bucket_name: Bucket to benchmark (default: BUCKET_NAME)
        access_key: Access key id
        secret_key: Secret access key
        region: Region name (default: AWS_REGION for s3, 'auto' for r2)
        concurrency: Number of workers, used to size the connection pool

    Returns:
        Storage system instance (AWSSystem or R2System)

    Raises:
        ValueError: If storage_type is not supported
    """
    storage_type = storage_type.lower()

    if storage_type == "r2":
        credentials = {
            "access_key_id": access_key or R2_ACCESS_KEY_ID,
            "secret_access_key": secret_key or R2_SECRET_ACCESS_KEY,
            "region_name": region or "auto",
        }
        return R2System(credentials, endpoint=endpoint, bucket_name=bucket_name, concurrency=concurrency)

    elif storage_type == "s3":
        credentials = {
            "access_key_id": access_key or AWS_ACCESS_KEY_ID,
            "secret_access_key": secret_key or AWS_SECRET_ACCESS_KEY,
            "region_name": region or AWS_REGION,
        }
        return AWSSystem(credentials, endpoint=endpoint, bucket_name=bucket_name, concurrency=concurrency)

    else:
        raise ValueError(f"Unsupported storage type: {storage_type}. Must be 's3' or 'r2'.")
