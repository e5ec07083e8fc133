from pydantic import BaseModel, ConfigDict, Field


class FileEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str = Field(min_length=1)
    content: str


class RecordMetadata(BaseModel):
    repo_id: str
    file_path: str
    content: str                      # the truncated text that was embedded


class IndexRecord(BaseModel):
    id: str                           # uuid5 of repo_id + normalized path
    values: list[float]
    metadata: RecordMetadata


class FailedFile(BaseModel):
    file_path: str
    error: str


class IndexingOutcome(BaseModel):
    success_count: int = 0            # files embedded
    failed_count: int = 0             # files whose embedding failed
    failed_files: list[FailedFile] = Field(default_factory=list)
    persisted_count: int = 0          # embedded files whose batch upsert succeeded
    failed_batches: int = 0


class StoreMatch(BaseModel):
    id: str
    score: float | None = None
    repo_id: str | None = None
    file_path: str | None = None
    content: str | None = None


class IndexRequest(BaseModel):
    owner: str
    repo: str
    user_id: str | None = None
    sha: str = "HEAD"

    @property
    def repo_id(self) -> str:
        return f"{self.owner}/{self.repo}"


class ContextRequest(BaseModel):
    owner: str
    repo: str
    title: str
    description: str | None = None
    top_k: int = 5


class ContextResult(BaseModel):
    query: str
    snippets: list[str]


class ReviewRequest(BaseModel):
    diff: str
    pr_title: str
    pr_description: str | None = None
    changed_files: list[str] = Field(default_factory=list)


class ReviewPromptRequest(ReviewRequest):
    owner: str
    repo: str
    top_k: int = 5


class ReviewPrompt(BaseModel):
    query: str
    snippets: list[str]
    prompt: str
