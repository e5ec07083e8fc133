import logging
import uuid
from typing import Protocol

from qdrant_client import AsyncQdrantClient
from qdrant_client.http.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    VectorParams,
)

from .errors import StoreQueryError, StoreWriteError
from .models import IndexRecord, StoreMatch

log = logging.getLogger(__name__)

REPO_ID_KEY = "repo_id"


def normalize_path(path: str) -> str:
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path.lstrip("/")


def record_id(repo_id: str, path: str) -> str:
    """Stable point id for a file of a repository.

    The repository gets its own uuid5 namespace, so no choice of repo_id and path
    can produce the key of another repository. The result is a UUID, which Qdrant
    accepts whatever characters the path holds.
    """
    namespace = uuid.uuid5(uuid.NAMESPACE_URL, repo_id)
    return str(uuid.uuid5(namespace, normalize_path(path)))


class VectorStore(Protocol):
    async def upsert(self, records: list[IndexRecord]) -> None: ...

    async def query(self, vector: list[float], repo_id: str, top_k: int) -> list[StoreMatch]: ...


class QdrantStore:
    def __init__(self, client: AsyncQdrantClient, collection_name: str, dimensions: int) -> None:
        self.client = client
        self.collection_name = collection_name
        self.dimensions = dimensions

    async def ensure_collection(self) -> None:
        if await self.client.collection_exists(self.collection_name):
            info = await self.client.get_collection(self.collection_name)
            vectors = info.config.params.vectors
            if isinstance(vectors, VectorParams) and vectors.size != self.dimensions:
                raise ValueError(
                    f"Collection '{self.collection_name}' holds {vectors.size}-dimension vectors, "
                    f"the embedding model produces {self.dimensions}"
                )
            return
        log.info("Creating collection %s (%d dimensions)", self.collection_name, self.dimensions)
        await self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=VectorParams(size=self.dimensions, distance=Distance.COSINE),
        )
        await self.client.create_payload_index(
            collection_name=self.collection_name,
            field_name=REPO_ID_KEY,
            field_schema=PayloadSchemaType.KEYWORD,
        )

    async def upsert(self, records: list[IndexRecord]) -> None:
        points = [
            PointStruct(id=r.id, vector=r.values, payload=r.metadata.model_dump())
            for r in records
        ]
        try:
            await self.client.upsert(
                collection_name=self.collection_name,
                points=points,
                wait=True,
            )
        except Exception as e:
            raise StoreWriteError(f"upsert of {len(points)} points failed: {e}") from e

    async def query(self, vector: list[float], repo_id: str, top_k: int) -> list[StoreMatch]:
        try:
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=vector,
                query_filter=Filter(
                    must=[FieldCondition(key=REPO_ID_KEY, match=MatchValue(value=repo_id))]
                ),
                limit=top_k,
                with_payload=True,
            )
        except Exception as e:
            raise StoreQueryError(f"query for {repo_id} failed: {e}") from e

        matches = []
        for point in response.points:
            payload = point.payload or {}
            matches.append(StoreMatch(
                id=str(point.id),
                score=point.score,
                repo_id=payload.get(REPO_ID_KEY),
                file_path=payload.get("file_path"),
                content=payload.get("content"),
            ))
        return matches

    async def close(self) -> None:
        await self.client.close()
