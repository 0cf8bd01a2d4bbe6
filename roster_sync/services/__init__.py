"""Clients for external services (LLM, embeddings, file downloads)."""

from roster_sync.services.embedding_client import EmbeddingClient
from roster_sync.services.file_fetcher import FetchedFile, FileFetcher
from roster_sync.services.llm_client import LLMClient, LLMClientError

__all__ = [
    "EmbeddingClient",
    "FetchedFile",
    "FileFetcher",
    "LLMClient",
    "LLMClientError",
]
