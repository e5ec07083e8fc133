"""Shared fixtures: fake embedding model and in-memory vector store."""
from __future__ import annotations

import asyncio

import pytest

from codecontext.embedding import EmbeddingClient
from codecontext.errors import StoreQueryError, StoreWriteError
from codecontext.models import IndexRecord, StoreMatch

DIM = 8


class FakeEmbeddingModel:
    """Records calls and the peak number of concurrent requests."""

    def __init__(self, dim: int = DIM, fail_on: tuple[str, ...] = (), delay: float = 0.0):
        self.dim = dim
        self.fail_on = fail_on
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def aget_text_embedding(self, text: str) -> list[float]:
        self.calls.append(text)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if any(marker in text for marker in self.fail_on):
                raise RuntimeError("provider rejected input")
            return [float(len(text) % 7 + 1)] + [0.5] * (self.dim - 1)
        finally:
            self.in_flight -= 1


class InMemoryStore:
    """Dict-backed store keyed by record id, with a repo_id filter on query."""

    def __init__(self, fail_batches: set[int] = frozenset(), fail_query: bool = False):
        self.records: dict[str, IndexRecord] = {}
        self.batches: list[list[IndexRecord]] = []
        self.fail_batches = fail_batches
        self.fail_query = fail_query
        self.queries: list[tuple[list[float], str, int]] = []
        self.extra_matches: list[StoreMatch] = []

    async def upsert(self, records: list[IndexRecord]) -> None:
        index = len(self.batches)
        self.batches.append(records)
        if index in self.fail_batches:
            raise StoreWriteError(f"batch {index} rejected")
        for r in records:
            self.records[r.id] = r

    async def query(self, vector: list[float], repo_id: str, top_k: int) -> list[StoreMatch]:
        self.queries.append((vector, repo_id, top_k))
        if self.fail_query:
            raise StoreQueryError("store unavailable")
        matches = [
            StoreMatch(
                id=r.id,
                score=1.0,
                repo_id=r.metadata.repo_id,
                file_path=r.metadata.file_path,
                content=r.metadata.content,
            )
            for r in self.records.values()
            if r.metadata.repo_id == repo_id
        ]
        return (self.extra_matches + matches)[:top_k]


@pytest.fixture
def embedding_model():
    return FakeEmbeddingModel()


@pytest.fixture
def embedder(embedding_model):
    return EmbeddingClient(embedding_model, DIM)


@pytest.fixture
def store():
    return InMemoryStore()
