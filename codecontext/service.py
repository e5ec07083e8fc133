import asyncio
import logging
import os
from pathlib import Path

import restate
from hypercorn.asyncio import serve
from hypercorn.config import Config

from .config import Settings
from .errors import InvalidInputError
from .git import load_files
from .models import (
    ContextRequest,
    ContextResult,
    IndexingOutcome,
    IndexRequest,
    ReviewPrompt,
    ReviewPromptRequest,
)
from .pipeline import open_pipeline
from .prompt import build_context_query, build_review_prompt

log = logging.getLogger(__name__)

indexer_service = restate.Service("Indexer")


def clone_path(repos_dir: str, owner: str, repo: str) -> Path:
    return Path(repos_dir) / owner / f"{repo}.git"


@indexer_service.handler("IndexRepo")
async def index_repo_handler(ctx: restate.Context, req: IndexRequest) -> IndexingOutcome:
    settings = Settings.from_env()
    git_dir = clone_path(settings.repos_dir, req.owner, req.repo)
    if not git_dir.is_dir():
        raise restate.TerminalError(f"No clone of {req.repo_id} at {git_dir}", status_code=404)

    log.info("Indexing %s at %s for user %s", req.repo_id, req.sha, req.user_id)
    files = await asyncio.to_thread(load_files, str(git_dir), req.sha)
    try:
        async with open_pipeline(settings) as pipeline:
            return await pipeline.indexer.index_codebase(
                req.repo_id, files, concurrency_limit=settings.concurrency_limit
            )
    except InvalidInputError as e:
        raise restate.TerminalError(str(e), status_code=400) from e


@indexer_service.handler("RetrieveContext")
async def retrieve_context_handler(ctx: restate.Context, req: ContextRequest) -> ContextResult:
    settings = Settings.from_env()
    query = build_context_query(req.title, req.description)
    try:
        async with open_pipeline(settings) as pipeline:
            snippets = await pipeline.retriever.retrieve_context(
                query, f"{req.owner}/{req.repo}", req.top_k
            )
    except InvalidInputError as e:
        raise restate.TerminalError(str(e), status_code=400) from e
    return ContextResult(query=query, snippets=snippets)


@indexer_service.handler("BuildReviewPrompt")
async def build_review_prompt_handler(ctx: restate.Context, req: ReviewPromptRequest) -> ReviewPrompt:
    """Retrieve related code for a pull request and render the reviewer's prompt.

    An empty retrieval still yields a prompt; the review proceeds without context.
    """
    settings = Settings.from_env()
    query = build_context_query(req.pr_title, req.pr_description)
    try:
        async with open_pipeline(settings) as pipeline:
            snippets = await pipeline.retriever.retrieve_context(
                query, f"{req.owner}/{req.repo}", req.top_k
            )
    except InvalidInputError as e:
        raise restate.TerminalError(str(e), status_code=400) from e
    return ReviewPrompt(query=query, snippets=snippets, prompt=build_review_prompt(req, snippets))


app = restate.app([indexer_service])


if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.environ.get("INDEXER_HOST", "0.0.0.0")
    port = os.environ.get("INDEXER_PORT", "9091")

    config = Config()
    config.bind = [f"{host}:{port}"]

    asyncio.run(serve(app, config))
