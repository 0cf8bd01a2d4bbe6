"""LLM client wrapper for Anthropic structured outputs."""

import base64
from typing import TypeVar

from anthropic import Anthropic, APIError
from pydantic import BaseModel, ValidationError

from roster_sync.config import settings
from roster_sync.errors import MalformedExternalOutputError, UpstreamServiceError

T = TypeVar("T", bound=BaseModel)


class LLMClientError(UpstreamServiceError):
    """Raised when the LLM call itself fails."""

    pass


class LLMClient:
    """Anthropic client wrapper with structured output support.

    Uses client.beta.messages.parse with Pydantic models for
    schema-valid extraction output. Output that still fails validation
    is reported as malformed rather than trusted.
    """

    def __init__(
        self,
        client: Anthropic | None = None,
        model: str | None = None,
        max_tokens: int = 4096,
    ):
        """Initialize LLM client.

        Args:
            client: Optional Anthropic client for dependency injection.
                   If not provided, creates one from settings.
            model: Model name. Defaults to settings.anthropic_model.
            max_tokens: Maximum output tokens per request
        """
        if client is not None:
            self._client = client
        elif settings.anthropic_api_key:
            self._client = Anthropic(api_key=settings.anthropic_api_key)
        else:
            # Allow initialization without API key for testing
            self._client = None
        self._model = model or settings.anthropic_model
        self._max_tokens = max_tokens

    async def extract(self, prompt: str, response_model: type[T]) -> T:
        """Extract structured data from text using LLM.

        Args:
            prompt: The user prompt containing text to extract from
            response_model: Pydantic model defining the output schema

        Returns:
            Parsed response matching the response_model type

        Raises:
            LLMClientError: If the request fails
            MalformedExternalOutputError: If the output does not fit the schema
        """
        return self._parse([{"type": "text", "text": prompt}], response_model)

    async def extract_from_image(
        self,
        prompt: str,
        image: bytes,
        media_type: str,
        response_model: type[T],
    ) -> T:
        """Extract structured data from an image using LLM vision.

        Args:
            prompt: Instructions for what to extract
            image: Raw image bytes
            media_type: MIME type of the image (e.g. "image/jpeg")
            response_model: Pydantic model defining the output schema

        Returns:
            Parsed response matching the response_model type

        Raises:
            LLMClientError: If the request fails
            MalformedExternalOutputError: If the output does not fit the schema
        """
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": media_type,
                    "data": base64.b64encode(image).decode("ascii"),
                },
            },
            {"type": "text", "text": prompt},
        ]
        return self._parse(content, response_model)

    def _parse(self, content: list[dict], response_model: type[T]) -> T:
        if self._client is None:
            raise LLMClientError(
                "Anthropic client not initialized. "
                "Set ANTHROPIC_API_KEY environment variable."
            )

        try:
            response = self._client.beta.messages.parse(
                model=self._model,
                max_tokens=self._max_tokens,
                betas=["structured-outputs-2025-11-13"],
                messages=[{"role": "user", "content": content}],
                output_format=response_model,
            )
        except APIError as e:
            raise LLMClientError(f"Anthropic API error: {e}") from e
        except ValidationError as e:
            raise MalformedExternalOutputError(
                f"{response_model.__name__} output failed validation: {e}"
            ) from e
        except Exception as e:
            raise LLMClientError(f"Extraction failed: {e}") from e

        if response.parsed_output is None:
            raise MalformedExternalOutputError(
                f"No {response_model.__name__} in model response"
            )
        return response.parsed_output
