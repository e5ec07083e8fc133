from .errors import (
    CodeContextError,
    EmbeddingError,
    InvalidInputError,
    RetrievalError,
    StoreQueryError,
    StoreWriteError,
)
from .indexing import CodebaseIndexer
from .models import FileEntry, IndexingOutcome, IndexRecord
from .retrieval import ContextRetriever

__all__ = [
    "CodebaseIndexer",
    "CodeContextError",
    "ContextRetriever",
    "EmbeddingError",
    "FileEntry",
    "IndexRecord",
    "IndexingOutcome",
    "InvalidInputError",
    "RetrievalError",
    "StoreQueryError",
    "StoreWriteError",
]
