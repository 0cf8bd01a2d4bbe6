"""Tests for EmbeddingCache."""

import asyncio

import pytest

from roster_sync.errors import EmbeddingServiceError
from roster_sync.identity.embedding_cache import EmbeddingCache


class TrackingProvider:
    """Provider that records calls and the peak number of in-flight requests."""

    def __init__(self, fail_on: str | None = None):
        self.calls: list[str] = []
        self.in_flight = 0
        self.peak = 0
        self.fail_on = fail_on
        self.cancelled = 0

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            if text == self.fail_on:
                raise EmbeddingServiceError("provider down")
            await asyncio.sleep(0.01)
            return [float(len(text)), 1.0]
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1


class TestEmbeddingCache:
    """Tests for batch embedding fetches."""

    @pytest.mark.asyncio
    async def test_deduplicates_by_normalized_name(self):
        """Case and spacing variants share a single provider call."""
        provider = TrackingProvider()
        cache = EmbeddingCache(provider)

        await cache.fetch_all(["Priya Shah", "priya  shah", "PRIYA SHAH "])

        assert provider.calls == ["Priya Shah"]
        assert cache.get("priya shah") == cache.get("Priya Shah")
        assert "PRIYA SHAH" in cache

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        """No more than ``concurrency`` requests run at once."""
        provider = TrackingProvider()
        cache = EmbeddingCache(provider, concurrency=3)

        await cache.fetch_all([f"Name {i}" for i in range(12)])

        assert len(provider.calls) == 12
        assert provider.peak == 3

    @pytest.mark.asyncio
    async def test_cached_names_are_not_refetched(self):
        """A second fetch only embeds new names."""
        provider = TrackingProvider()
        cache = EmbeddingCache(provider)

        await cache.fetch_all(["Ana"])
        await cache.fetch_all(["Ana", "Ben"])

        assert provider.calls == ["Ana", "Ben"]

    @pytest.mark.asyncio
    async def test_failure_propagates_and_cancels_remaining(self):
        """One provider failure aborts the batch."""
        provider = TrackingProvider(fail_on="Broken")
        cache = EmbeddingCache(provider, concurrency=4)

        with pytest.raises(EmbeddingServiceError, match="provider down"):
            await cache.fetch_all(["Slow 1", "Broken", "Slow 2", "Slow 3"])

        assert provider.cancelled == 3
        assert provider.in_flight == 0
        assert "Slow 1" not in cache

    def test_get_unknown_name_raises(self):
        """Names never fetched are a KeyError."""
        cache = EmbeddingCache(TrackingProvider())

        with pytest.raises(KeyError):
            cache.get("Nobody")

    def test_rejects_zero_concurrency(self):
        """At least one worker is required."""
        with pytest.raises(ValueError):
            EmbeddingCache(TrackingProvider(), concurrency=0)
