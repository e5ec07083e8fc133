from numbers import Real
from typing import Protocol

from llama_index.embeddings.openai import OpenAIEmbedding

from .config import Settings
from .errors import EmbeddingError


class TextEmbeddingModel(Protocol):
    async def aget_text_embedding(self, text: str) -> list[float]: ...


class EmbeddingClient:
    """Turns one text into one fixed-dimension vector.

    No retries happen here; callers decide what a failed call means.
    """

    def __init__(self, model: TextEmbeddingModel, dimensions: int) -> None:
        self._model = model
        self.dimensions = dimensions

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmbeddingClient":
        if not settings.openrouter_api_key:
            raise ValueError("OPENROUTER_API_KEY environment variable is not set")
        model = OpenAIEmbedding(
            model=settings.embedding_model,
            dimensions=settings.dimensions,
            api_base=settings.embedding_api_base,
            api_key=settings.openrouter_api_key,
            max_retries=0,
            default_headers={
                "HTTP-Referer": "https://github.com/ai-reviewer",
                "X-Title": "ai-reviewer-codecontext",
            },
        )
        return cls(model, settings.dimensions)

    async def embed(self, text: str) -> list[float]:
        try:
            vector = await self._model.aget_text_embedding(text)
        except Exception as e:
            raise EmbeddingError(f"embedding request failed: {e}") from e

        if not vector:
            raise EmbeddingError("provider returned an empty embedding")
        if len(vector) != self.dimensions:
            raise EmbeddingError(
                f"expected {self.dimensions} dimensions, provider returned {len(vector)}"
            )
        if not all(isinstance(v, Real) and not isinstance(v, bool) for v in vector):
            raise EmbeddingError("provider returned non-numeric embedding values")
        return [float(v) for v in vector]
