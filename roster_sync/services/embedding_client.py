"""Embedding provider client for name vectors.

Talks to an OpenAI-compatible ``/embeddings`` endpoint over httpx.
Transient failures (transport errors, 429, 5xx) are retried with
exponential backoff; anything else surfaces as EmbeddingServiceError.
"""

import httpx
import structlog
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from roster_sync.config import settings
from roster_sync.errors import EmbeddingServiceError

logger = structlog.get_logger()


class _TransientEmbeddingError(Exception):
    """Internal marker for responses worth retrying."""


class _EmbeddingItem(BaseModel):
    embedding: list[float] = Field(min_length=1)


class EmbeddingResponse(BaseModel):
    """Subset of the provider response we rely on."""

    data: list[_EmbeddingItem] = Field(min_length=1)


class EmbeddingClient:
    """Async client that turns a string into a fixed-length vector.

    The same model must be used for stored identity embeddings, otherwise
    cosine similarity between them is meaningless.
    """

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
    ):
        """Initialize embedding client.

        Args:
            api_url: Embeddings endpoint. Defaults to settings.
            api_key: Bearer token. Defaults to settings.
            model: Embedding model name. Defaults to settings.
            http_client: Optional httpx client for dependency injection
            max_attempts: Attempts per text before giving up
            backoff_seconds: Base delay for exponential backoff
        """
        self._url = api_url or settings.embedding_api_url
        self._api_key = api_key or settings.embedding_api_key
        self._model = model or settings.embedding_model
        self._http = http_client or httpx.AsyncClient(
            timeout=settings.http_timeout_seconds
        )
        self._max_attempts = max_attempts
        self._backoff = backoff_seconds

    async def embed(self, text: str) -> list[float]:
        """Create an embedding for a single string.

        Args:
            text: Text to embed (an employee name)

        Returns:
            Embedding vector

        Raises:
            EmbeddingServiceError: If the provider is unavailable or replies
                with an unusable payload
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self._max_attempts),
                wait=wait_exponential(multiplier=self._backoff, max=8),
                retry=retry_if_exception_type(_TransientEmbeddingError),
                reraise=True,
            ):
                with attempt:
                    payload = await self._request(text)
        except _TransientEmbeddingError as e:
            logger.error(
                "embedding provider unavailable",
                attempts=self._max_attempts,
                error=str(e),
            )
            raise EmbeddingServiceError(str(e)) from e

        try:
            parsed = EmbeddingResponse.model_validate(payload)
        except ValidationError as e:
            raise EmbeddingServiceError(f"Malformed embedding response: {e}") from e
        return parsed.data[0].embedding

    async def _request(self, text: str) -> dict:
        headers = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            response = await self._http.post(
                self._url,
                json={"model": self._model, "input": text},
                headers=headers,
            )
        except httpx.TransportError as e:
            raise _TransientEmbeddingError(f"Transport error: {e}") from e

        if response.status_code == 429 or response.status_code >= 500:
            raise _TransientEmbeddingError(
                f"Embedding provider returned {response.status_code}"
            )
        if response.status_code >= 400:
            raise EmbeddingServiceError(
                f"Embedding request rejected ({response.status_code}): "
                f"{response.text[:200]}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise EmbeddingServiceError("Embedding response is not JSON") from e

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()
