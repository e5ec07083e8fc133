import pytest

from codecontext.embedding import EmbeddingClient
from codecontext.errors import InvalidInputError
from codecontext.indexing import CodebaseIndexer, build_embedding_text
from codecontext.models import FileEntry, IndexingOutcome
from codecontext.store import record_id

from .conftest import DIM, FakeEmbeddingModel, InMemoryStore


def _files(n: int) -> list[FileEntry]:
    return [FileEntry(path=f"src/mod_{i}.py", content=f"x = {i}\n") for i in range(n)]


class TestBuildEmbeddingText:
    def test_prefixes_path(self):
        assert build_embedding_text("a.ts", "let x = 1;") == "File: a.ts\n\nlet x = 1;"

    def test_hard_cut_at_limit(self):
        text = build_embedding_text("a.ts", "x" * 9000)
        assert len(text) == 8000
        assert text == ("File: a.ts\n\n" + "x" * 9000)[:8000]


class TestIndexCodebase:
    @pytest.mark.asyncio
    async def test_truncated_text_is_embedded_and_stored(self, embedder, embedding_model, store):
        indexer = CodebaseIndexer(embedder, store)
        outcome = await indexer.index_codebase("acme/widgets", [FileEntry(path="a.ts", content="x" * 9000)])

        assert outcome.success_count == 1
        assert outcome.failed_count == 0
        assert outcome.failed_files == []
        assert len(embedding_model.calls) == 1
        assert len(embedding_model.calls[0]) == 8000

        stored = store.records[record_id("acme/widgets", "a.ts")]
        assert stored.metadata.content == embedding_model.calls[0]
        assert stored.metadata.repo_id == "acme/widgets"
        assert stored.metadata.file_path == "a.ts"

    @pytest.mark.asyncio
    async def test_one_failing_file_does_not_stop_others(self, store):
        embedder = EmbeddingClient(FakeEmbeddingModel(fail_on=("File: b.ts",)), DIM)
        indexer = CodebaseIndexer(embedder, store)
        files = [
            FileEntry(path="a.ts", content="a"),
            FileEntry(path="b.ts", content="b"),
            FileEntry(path="c.ts", content="c"),
        ]
        outcome = await indexer.index_codebase("acme/widgets", files)

        assert outcome.success_count == 2
        assert outcome.failed_count == 1
        assert [f.file_path for f in outcome.failed_files] == ["b.ts"]
        assert "provider rejected input" in outcome.failed_files[0].error
        assert len(store.records) == 2

    @pytest.mark.asyncio
    async def test_every_file_accounted_for(self, store):
        embedder = EmbeddingClient(FakeEmbeddingModel(fail_on=("mod_3", "mod_7")), DIM)
        indexer = CodebaseIndexer(embedder, store)
        outcome = await indexer.index_codebase("acme/widgets", _files(12))
        assert outcome.success_count + outcome.failed_count == 12
        assert outcome.failed_count == 2

    @pytest.mark.asyncio
    async def test_empty_list_makes_no_calls(self, embedder, embedding_model, store):
        indexer = CodebaseIndexer(embedder, store)
        outcome = await indexer.index_codebase("acme/widgets", [])
        assert outcome == IndexingOutcome()
        assert embedding_model.calls == []
        assert store.batches == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [1, 3, 10])
    async def test_concurrency_is_bounded(self, store, limit):
        model = FakeEmbeddingModel(delay=0.001)
        indexer = CodebaseIndexer(EmbeddingClient(model, DIM), store)
        await indexer.index_codebase("acme/widgets", _files(25), concurrency_limit=limit)
        assert len(model.calls) == 25
        assert model.max_in_flight <= limit
        assert model.max_in_flight == limit

    @pytest.mark.asyncio
    async def test_records_upserted_in_sequential_batches(self, embedder, store):
        indexer = CodebaseIndexer(embedder, store)
        outcome = await indexer.index_codebase("acme/widgets", _files(250))
        assert [len(b) for b in store.batches] == [100, 100, 50]
        assert outcome.persisted_count == 250
        assert outcome.failed_batches == 0

    @pytest.mark.asyncio
    async def test_failed_batch_does_not_abort_others(self, embedder):
        store = InMemoryStore(fail_batches={1})
        indexer = CodebaseIndexer(embedder, store, batch_size=10)
        outcome = await indexer.index_codebase("acme/widgets", _files(30))

        assert len(store.batches) == 3
        assert outcome.success_count == 30
        assert outcome.failed_count == 0
        assert outcome.persisted_count == 20
        assert outcome.failed_batches == 1
        assert len(store.records) == 20

    @pytest.mark.asyncio
    async def test_reindexing_overwrites_record(self, embedder, store):
        indexer = CodebaseIndexer(embedder, store)
        await indexer.index_codebase("acme/widgets", [FileEntry(path="src/a.py", content="old")])
        await indexer.index_codebase("acme/widgets", [FileEntry(path="src/a.py", content="new")])

        assert len(store.records) == 1
        (stored,) = store.records.values()
        assert stored.metadata.content == "File: src/a.py\n\nnew"

    @pytest.mark.asyncio
    async def test_duplicate_paths_last_write_wins(self, embedder, store):
        indexer = CodebaseIndexer(embedder, store)
        files = [
            FileEntry(path="a.py", content="first"),
            FileEntry(path="a.py", content="second"),
        ]
        outcome = await indexer.index_codebase("acme/widgets", files)
        assert outcome.success_count == 2
        assert len(store.records) == 1
        (stored,) = store.records.values()
        assert stored.metadata.content.endswith("second")

    @pytest.mark.asyncio
    async def test_accepts_mappings(self, embedder, store):
        indexer = CodebaseIndexer(embedder, store)
        outcome = await indexer.index_codebase("acme/widgets", [{"path": "a.py", "content": "x"}])
        assert outcome.success_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "repo_id, files, limit",
        [
            ("", [FileEntry(path="a.py", content="x")], 10),
            ("   ", [FileEntry(path="a.py", content="x")], 10),
            (None, [FileEntry(path="a.py", content="x")], 10),
            ("acme/widgets", None, 10),
            ("acme/widgets", [{"content": "no path"}], 10),
            ("acme/widgets", [FileEntry(path="a.py", content="x")], 0),
        ],
    )
    async def test_invalid_input_fails_before_any_call(self, embedder, embedding_model, store, repo_id, files, limit):
        indexer = CodebaseIndexer(embedder, store)
        with pytest.raises(InvalidInputError):
            await indexer.index_codebase(repo_id, files, concurrency_limit=limit)
        assert embedding_model.calls == []
        assert store.batches == []


class TestRecordId:
    def test_stable(self):
        assert record_id("acme/widgets", "src/a.py") == record_id("acme/widgets", "src/a.py")

    def test_separators_normalized(self):
        assert record_id("acme/widgets", "src\\a.py") == record_id("acme/widgets", "src/a.py")
        assert record_id("acme/widgets", "./src/a.py") == record_id("acme/widgets", "src/a.py")

    def test_no_collision_on_replaced_characters(self):
        assert record_id("acme/widgets", "src/a_b.py") != record_id("acme/widgets", "src_a/b.py")
        assert record_id("acme/widgets", "src/a.py") != record_id("other/repo", "src/a.py")

    def test_no_collision_across_repo_and_path_boundary(self):
        assert record_id("a", "b:c.py") != record_id("a:b", "c.py")
        assert record_id("acme", "w/x.py") != record_id("acme/w", "x.py")

    @pytest.mark.asyncio
    async def test_repositories_sharing_a_key_prefix_keep_separate_records(self, embedder, store):
        indexer = CodebaseIndexer(embedder, store)
        await indexer.index_codebase("acme", [FileEntry(path="w:x.py", content="first")])
        await indexer.index_codebase("acme:w", [FileEntry(path="x.py", content="second")])
        assert len(store.records) == 2
        assert {r.metadata.repo_id for r in store.records.values()} == {"acme", "acme:w"}
