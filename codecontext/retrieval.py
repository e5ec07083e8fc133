import logging

from .embedding import EmbeddingClient
from .errors import EmbeddingError, InvalidInputError, RetrievalError
from .store import VectorStore

log = logging.getLogger(__name__)

DEFAULT_TOP_K = 5


class ContextRetriever:
    def __init__(self, embedder: EmbeddingClient, store: VectorStore) -> None:
        self.embedder = embedder
        self.store = store

    async def retrieve_context(self, query: str, repo_id: str, top_k: int = DEFAULT_TOP_K) -> list[str]:
        """Return stored snippets of `repo_id` most similar to the query.

        Args:
            query: Free text, usually a pull-request title and description.
            repo_id: Repository identifier (``owner/repo``); results never leave it.
            top_k: Upper bound on the number of snippets.

        Snippets come back in the store's similarity order. Matches without content
        are skipped, so the result may be shorter than ``top_k`` or empty.
        """
        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError("query must be a non-empty string")
        if not isinstance(repo_id, str) or not repo_id.strip():
            raise InvalidInputError("repo_id is required")
        if not isinstance(top_k, int) or top_k < 1:
            raise InvalidInputError("top_k must be a positive integer")

        try:
            vector = await self.embedder.embed(query)
        except EmbeddingError as e:
            raise RetrievalError(f"could not embed query for {repo_id}: {e}") from e

        matches = await self.store.query(vector, repo_id, top_k)

        snippets = [
            m.content for m in matches
            if m.content and m.repo_id == repo_id
        ]
        log.debug("Retrieved %d/%d snippets for %s", len(snippets), len(matches), repo_id)
        return snippets[:top_k]
