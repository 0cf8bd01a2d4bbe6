"""Per-batch embedding cache with bounded-concurrency fetching.

Rosters repeat the same name across the week, so each distinct
(normalized) name is embedded once per ingestion. Fetches run through a
fixed-size worker pool to stay inside the provider's rate limits.
"""

import asyncio
from collections.abc import Iterable
from typing import Protocol

import structlog

from roster_sync.identity.similarity import normalize_name

logger = structlog.get_logger()


class EmbeddingProvider(Protocol):
    """Anything that can embed a string (EmbeddingClient in production)."""

    async def embed(self, text: str) -> list[float]: ...


class EmbeddingCache:
    """Caches name embeddings for the duration of one resolution batch."""

    def __init__(self, provider: EmbeddingProvider, concurrency: int = 4):
        """Initialize cache.

        Args:
            provider: Embedding provider to call on cache misses
            concurrency: Maximum number of in-flight provider calls
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._provider = provider
        self._concurrency = concurrency
        self._vectors: dict[str, list[float]] = {}

    def __contains__(self, name: str) -> bool:
        return normalize_name(name) in self._vectors

    def get(self, name: str) -> list[float]:
        """Return the cached embedding for a name.

        Raises:
            KeyError: If the name was never fetched
        """
        return self._vectors[normalize_name(name)]

    async def fetch_all(self, names: Iterable[str]) -> None:
        """Embed every distinct uncached name.

        Any provider failure cancels the remaining fetches and propagates,
        so a batch is never resolved with some names missing.

        Args:
            names: Names to make available via get()
        """
        pending: dict[str, str] = {}
        for name in names:
            key = normalize_name(name)
            if key not in self._vectors and key not in pending:
                pending[key] = name

        if not pending:
            return

        semaphore = asyncio.Semaphore(self._concurrency)

        async def fetch(key: str, name: str) -> None:
            async with semaphore:
                self._vectors[key] = await self._provider.embed(name)

        tasks = [asyncio.create_task(fetch(k, n)) for k, n in pending.items()]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        logger.debug(
            "embeddings fetched",
            fetched=len(pending),
            cached=len(self._vectors),
        )
