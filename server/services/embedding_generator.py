"""
Query Embedder

Embeds free-text queries with OpenAI's embedding API so they can be matched
against the event vectors in Qdrant. Model and dimensions must match the ones
the ingest job used for the collection.

Usage:
    embedder = OpenAIQueryEmbedder(api_key="sk-...")
    vector = await embedder.embed("live jazz tonight")
"""

from typing import List, Optional, Tuple

from openai import AsyncOpenAI

from recommender.errors import BackendUnavailableError

# Query strings beyond this are truncated before embedding
MAX_QUERY_CHARS = 2000


class OpenAIQueryEmbedder:
    """QueryEmbedder backed by the OpenAI embeddings endpoint."""

    DEFAULT_MODEL = "text-embedding-3-small"
    DEFAULT_DIMENSIONS = 1536

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        dimensions: int = DEFAULT_DIMENSIONS,
        timeout: float = 10.0,
    ):
        """
        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY in the client)
            model: Embedding model name
            dimensions: Output dimensionality
            timeout: Request timeout in seconds
        """
        self.model = model
        self.dimensions = dimensions
        self._client = AsyncOpenAI(api_key=api_key, timeout=timeout)

    async def embed(self, text: str) -> List[float]:
        text = (text or "").strip()[:MAX_QUERY_CHARS]
        if not text:
            raise ValueError("Cannot embed an empty query")
        try:
            response = await self._client.embeddings.create(
                model=self.model,
                input=text,
                dimensions=self.dimensions,
            )
        except Exception as e:
            raise BackendUnavailableError("openai", str(e)) from e
        return list(response.data[0].embedding)


def check_openai_available(api_key: Optional[str]) -> Tuple[bool, str]:
    """
    Check if OpenAI is configured.

    Returns:
        (is_available, message)
    """
    if not api_key:
        return False, "OPENAI_API_KEY environment variable not set"
    return True, "OpenAI configured and ready"
