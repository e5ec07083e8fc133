class CodeContextError(Exception):
    """Base class for indexing and retrieval failures."""


class EmbeddingError(CodeContextError):
    """The embedding provider failed or returned an unusable vector."""


class StoreWriteError(CodeContextError):
    """A batch upsert to the vector store failed."""


class InvalidInputError(CodeContextError, ValueError):
    """Arguments were rejected before any external call was made."""


class RetrievalError(CodeContextError):
    """Context retrieval failed; no partial result is returned."""


class StoreQueryError(RetrievalError):
    """The vector store query failed."""
