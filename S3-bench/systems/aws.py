"""
Generic S3 object storage system (AWS S3 or any S3-compatible endpoint).
"""

from systems.base import ObjectStorageSystem
from configuration import S3_ENDPOINT, BUCKET_NAME
import logging

logger = logging.getLogger(__name__)


class AWSSystem(ObjectStorageSystem):
    """AWS S3 or S3-compatible object storage system."""

    def __init__(self, credentials: dict = None, endpoint: str = None, bucket_name: str = None,
                 concurrency: int = 1):
        if credentials is None:
            credentials = {}

        super().__init__(
            endpoint=endpoint or S3_ENDPOINT,
            bucket_name=bucket_name or BUCKET_NAME,
            credentials=credentials,
            concurrency=concurrency,
        )
        logger.info("Initialized S3 system")
