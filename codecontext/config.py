import os

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "openai/text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "openai/text-embedding-3-large": 3072,
}

OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"


class Settings(BaseModel):
    openrouter_api_key: str = ""
    embedding_model: str = "text-embedding-3-small"
    embedding_api_base: str = OPENROUTER_API_BASE
    qdrant_url: str = "http://localhost:6333"
    qdrant_api_key: str | None = None
    collection_name: str = "code-context"
    concurrency_limit: int = 10
    batch_size: int = 100
    max_content_chars: int = 8000
    repos_dir: str = "/data/repos"
    log_level: str = "INFO"

    @field_validator("embedding_model")
    @classmethod
    def _known_model(cls, value: str) -> str:
        if value not in MODEL_DIMENSIONS:
            raise ValueError(f"Unknown model '{value}'. Supported: {', '.join(MODEL_DIMENSIONS)}")
        return value

    @field_validator("concurrency_limit", "batch_size", "max_content_chars")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be a positive integer")
        return value

    @property
    def dimensions(self) -> int:
        return MODEL_DIMENSIONS[self.embedding_model]

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment, after loading a local .env file."""
        load_dotenv()
        env = os.environ
        return cls(
            openrouter_api_key=env.get("OPENROUTER_API_KEY", ""),
            embedding_model=env.get("EMBEDDING_MODEL", "text-embedding-3-small"),
            embedding_api_base=env.get("EMBEDDING_API_BASE", OPENROUTER_API_BASE),
            qdrant_url=env.get("QDRANT_URL", "http://localhost:6333"),
            qdrant_api_key=env.get("QDRANT_API_KEY") or None,
            collection_name=env.get("QDRANT_COLLECTION", "code-context"),
            concurrency_limit=env.get("INDEX_CONCURRENCY", "10"),
            batch_size=env.get("UPSERT_BATCH_SIZE", "100"),
            max_content_chars=env.get("MAX_CONTENT_CHARS", "8000"),
            repos_dir=env.get("REPOS_DIR", "/data/repos"),
            log_level=env.get("LOG_LEVEL", "INFO"),
        )
