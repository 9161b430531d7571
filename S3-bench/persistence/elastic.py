"""
Elasticsearch metrics backend over aiohttp.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from configuration import ELASTIC_INDEX, RETRYABLE_HTTP_STATUSES, TELEMETRY_TIMEOUT_SECONDS
from common.errors import TelemetryError

logger = logging.getLogger(__name__)


class ElasticsearchBackend:
    """Indexes metrics documents with the Elasticsearch document API.

    Use as an async context manager so the HTTP session is opened and closed
    around the run.
    """

    def __init__(self, url: str, index: str = ELASTIC_INDEX, timeout: float = TELEMETRY_TIMEOUT_SECONDS):
        self.url = url.rstrip("/")
        self.index_name = index
        self.timeout = timeout
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info(f"Initialized Elasticsearch backend {self.url}/{self.index_name}")

    @property
    def document_url(self) -> str:
        return f"{self.url}/{self.index_name}/_doc"

    async def __aenter__(self):
        self.session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout),
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.session:
            await self.session.close()
            self.session = None

    async def index(self, document: Dict[str, Any]) -> None:
        """Index one document.

        Raises:
            TelemetryError: With retryable=True for throttling, server errors,
                timeouts and connection failures, retryable=False otherwise
        """
        if not self.session:
            raise RuntimeError("Elasticsearch session not initialized. Use async context manager.")

        try:
            async with self.session.post(self.document_url, json=document) as response:
                if response.status < 300:
                    return
                body = await response.text()
                raise TelemetryError(
                    f"Elasticsearch returned HTTP {response.status}: {body[:200]}",
                    retryable=response.status in RETRYABLE_HTTP_STATUSES,
                    status_code=response.status,
                )
        except asyncio.TimeoutError:
            raise TelemetryError(f"Timeout indexing into {self.index_name}", retryable=True)
        except aiohttp.ClientError as e:
            raise TelemetryError(f"Connection error indexing into {self.index_name}: {e}", retryable=True)

    async def ping(self) -> bool:
        """Check that the cluster answers at all."""
        if not self.session:
            raise RuntimeError("Elasticsearch session not initialized. Use async context manager.")
        try:
            async with self.session.get(self.url) as response:
                return response.status < 300
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Elasticsearch ping failed: {e}")
            return False
