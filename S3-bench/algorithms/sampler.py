"""
Read sampler: picks the keys a read workload downloads.

Listing order is usually lexicographic, so reading keys in listing order would
exercise one key range at a time. The sampler pulls one listing page at a
time into a pool, shuffles it and hands keys out from the pool, so the read
order is decorrelated from the listing order while memory stays bounded by
the page size.

Every listed key is handed out at most once. When the listing is exhausted
before the requested number of reads is reached, the sampler deliberately
switches to sampling with replacement from every key it has seen: a read
benchmark over a small bucket must still be able to perform a large number
of reads.
"""

import asyncio
import logging
import random
from typing import List, Optional

from configuration import LIST_PAGE_SIZE
from common.errors import OperationError, ProvisioningError
from common.sizes import ObjectRecord

logger = logging.getLogger(__name__)


class ReadSampler:
    """Paginated, shuffled key source for read workloads."""

    def __init__(
        self,
        storage_system,
        requested: int,
        prefix: Optional[str] = None,
        page_size: int = LIST_PAGE_SIZE,
        rng: Optional[random.Random] = None,
    ):
        """Initialize the sampler.

        Args:
            storage_system: Storage backend providing list_objects_page()
            requested: Number of keys to hand out before stopping
            prefix: Directory-like prefix to sample under (None = whole bucket)
            page_size: Keys per listing page, also the pool bound
            rng: Random source (default: a fresh random.Random)
        """
        self.storage_system = storage_system
        self.requested = requested
        self.list_prefix = f"{prefix.rstrip('/')}/" if prefix else ""
        self.page_size = page_size
        self.rng = rng or random.Random()

        self._pool: List[str] = []
        self._observed: List[str] = []
        self._continuation_token: Optional[str] = None
        self._listing_exhausted = False
        self._issued = 0
        self._with_replacement = False
        self._lock = asyncio.Lock()

        logger.info(
            f"Initialized ReadSampler for prefix '{self.list_prefix}' "
            f"({requested} reads, page size {page_size})"
        )

    @property
    def issued(self) -> int:
        return self._issued

    @property
    def observed_count(self) -> int:
        return len(self._observed)

    @property
    def with_replacement(self) -> bool:
        return self._with_replacement

    async def _fetch_page(self) -> None:
        """Pull one listing page into the pool and shuffle it."""
        keys, next_token = await self.storage_system.list_objects_page(
            self.list_prefix, self._continuation_token, self.page_size
        )
        # Skip folder markers
        keys = [key for key in keys if not key.endswith("/")]

        self._pool.extend(keys)
        self._observed.extend(keys)
        self.rng.shuffle(self._pool)

        self._continuation_token = next_token
        if next_token is None:
            self._listing_exhausted = True

        logger.debug(
            f"Listed {len(keys)} keys ({len(self._observed)} observed, "
            f"exhausted={self._listing_exhausted})"
        )

    async def _refill(self) -> None:
        """Fetch pages until the pool has keys or the listing is exhausted."""
        while not self._pool and not self._listing_exhausted:
            await self._fetch_page()

    async def prime(self) -> bool:
        """Fetch the first non-empty page.

        Returns:
            False if the prefix holds no objects at all

        Raises:
            ProvisioningError: If the listing failed
        """
        async with self._lock:
            try:
                await self._refill()
            except OperationError as e:
                raise ProvisioningError(
                    f"Failed to list objects under '{self.list_prefix}': {e}"
                ) from e
            return bool(self._observed)

    async def next_record(self) -> Optional[ObjectRecord]:
        """Hand out the next key to read, or None once the requested count is reached."""
        async with self._lock:
            if self._issued >= self.requested:
                return None

            if not self._pool and not self._listing_exhausted:
                try:
                    await self._refill()
                except OperationError as e:
                    logger.error(
                        f"Listing failed after {len(self._observed)} keys, "
                        f"sampling from observed keys only: {e}"
                    )
                    self._listing_exhausted = True

            if self._pool:
                key = self._pool.pop()
            elif self._observed:
                if not self._with_replacement:
                    self._with_replacement = True
                    logger.info(
                        f"Only {len(self._observed)} objects under '{self.list_prefix}' "
                        f"for {self.requested} reads, sampling with replacement"
                    )
                key = self.rng.choice(self._observed)
            else:
                return None

            self._issued += 1
            return ObjectRecord(key)
