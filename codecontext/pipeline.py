from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from qdrant_client import AsyncQdrantClient

from .config import Settings
from .embedding import EmbeddingClient
from .indexing import CodebaseIndexer
from .retrieval import ContextRetriever
from .store import QdrantStore


@dataclass
class Pipeline:
    settings: Settings
    indexer: CodebaseIndexer
    retriever: ContextRetriever


@asynccontextmanager
async def open_pipeline(settings: Settings) -> AsyncIterator[Pipeline]:
    """Construct the clients for one unit of work and close them afterwards."""
    embedder = EmbeddingClient.from_settings(settings)
    client = AsyncQdrantClient(url=settings.qdrant_url, api_key=settings.qdrant_api_key)
    store = QdrantStore(client, settings.collection_name, settings.dimensions)
    try:
        await store.ensure_collection()
        yield Pipeline(
            settings=settings,
            indexer=CodebaseIndexer(
                embedder,
                store,
                batch_size=settings.batch_size,
                max_content_chars=settings.max_content_chars,
            ),
            retriever=ContextRetriever(embedder, store),
        )
    finally:
        await store.close()
