import asyncio
import logging
from collections.abc import Iterable, Mapping

from pydantic import ValidationError

from .embedding import EmbeddingClient
from .errors import EmbeddingError, InvalidInputError, StoreWriteError
from .models import FailedFile, FileEntry, IndexingOutcome, IndexRecord, RecordMetadata
from .store import VectorStore, record_id

log = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 8000
UPSERT_BATCH_SIZE = 100
DEFAULT_CONCURRENCY = 10


def build_embedding_text(path: str, content: str, max_chars: int = MAX_CONTENT_CHARS) -> str:
    """Text that is both embedded and stored for a file: a path header, then a hard cut."""
    return f"File: {path}\n\n{content}"[:max_chars]


def _coerce_files(files: Iterable[FileEntry | Mapping]) -> list[FileEntry]:
    entries = []
    for i, f in enumerate(files):
        if isinstance(f, FileEntry):
            entries.append(f)
            continue
        try:
            entries.append(FileEntry.model_validate(f))
        except ValidationError as e:
            raise InvalidInputError(f"file entry {i} is malformed: {e}") from e
    return entries


class CodebaseIndexer:
    def __init__(
        self,
        embedder: EmbeddingClient,
        store: VectorStore,
        batch_size: int = UPSERT_BATCH_SIZE,
        max_content_chars: int = MAX_CONTENT_CHARS,
    ) -> None:
        self.embedder = embedder
        self.store = store
        self.batch_size = batch_size
        self.max_content_chars = max_content_chars

    async def index_codebase(
        self,
        repo_id: str,
        files: Iterable[FileEntry | Mapping],
        concurrency_limit: int = DEFAULT_CONCURRENCY,
    ) -> IndexingOutcome:
        """Embed every file and upsert the records for one repository.

        Per-file embedding failures and per-batch upsert failures are recorded in the
        outcome rather than raised. Only bad arguments raise, before any external call.
        """
        if not isinstance(repo_id, str) or not repo_id.strip():
            raise InvalidInputError("repo_id is required")
        if files is None or isinstance(files, (str, bytes)):
            raise InvalidInputError("files must be a list of file entries")
        if not isinstance(concurrency_limit, int) or concurrency_limit < 1:
            raise InvalidInputError("concurrency_limit must be a positive integer")

        entries = _coerce_files(files)
        if not entries:
            return IndexingOutcome()

        # Slot accounting is local to this run.
        semaphore = asyncio.Semaphore(concurrency_limit)
        results = await asyncio.gather(
            *(self._embed_file(repo_id, entry, semaphore) for entry in entries)
        )

        records: list[IndexRecord] = []
        failed: list[FailedFile] = []
        for result in results:
            if isinstance(result, FailedFile):
                failed.append(result)
            else:
                records.append(result)

        persisted, failed_batches = await self._upsert_batches(repo_id, records)

        log.info(
            "Indexed %s: %d embedded, %d failed, %d persisted (%d failed batches)",
            repo_id, len(records), len(failed), persisted, failed_batches,
        )
        return IndexingOutcome(
            success_count=len(records),
            failed_count=len(failed),
            failed_files=failed,
            persisted_count=persisted,
            failed_batches=failed_batches,
        )

    async def _embed_file(
        self, repo_id: str, entry: FileEntry, semaphore: asyncio.Semaphore
    ) -> IndexRecord | FailedFile:
        text = build_embedding_text(entry.path, entry.content, self.max_content_chars)
        try:
            async with semaphore:
                vector = await self.embedder.embed(text)
        except EmbeddingError as e:
            log.warning("Failed to embed %s: %s", entry.path, e)
            return FailedFile(file_path=entry.path, error=str(e))

        return IndexRecord(
            id=record_id(repo_id, entry.path),
            values=vector,
            metadata=RecordMetadata(repo_id=repo_id, file_path=entry.path, content=text),
        )

    async def _upsert_batches(self, repo_id: str, records: list[IndexRecord]) -> tuple[int, int]:
        persisted = 0
        failed_batches = 0
        # Batches go out one at a time.
        for start in range(0, len(records), self.batch_size):
            batch = records[start:start + self.batch_size]
            try:
                await self.store.upsert(batch)
            except StoreWriteError as e:
                failed_batches += 1
                log.error(
                    "Upsert of batch %d (%d records) for %s failed: %s",
                    start // self.batch_size, len(batch), repo_id, e,
                )
                continue
            persisted += len(batch)
        return persisted, failed_batches
