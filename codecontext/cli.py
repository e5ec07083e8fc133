import asyncio
import logging
from pathlib import Path

import click

from .config import Settings
from .errors import CodeContextError
from .git import get_remote_url, load_files, repo_id_from_remote
from .pipeline import open_pipeline


def _git_dir(path: str) -> str:
    dot_git = Path(path) / ".git"
    return str(dot_git) if dot_git.exists() else path


def _load_settings() -> Settings:
    try:
        settings = Settings.from_env()
    except ValueError as e:
        raise click.ClickException(str(e))
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return settings


@click.group()
def cli() -> None:
    """Index repositories into Qdrant and retrieve related code for reviews."""


@cli.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, resolve_path=True))
@click.option("--repo-id", default=None, help="owner/repo; derived from the origin remote if omitted.")
@click.option("--sha", default="HEAD", show_default=True)
@click.option("--concurrency", type=int, default=None, help="Embedding calls in flight.")
def index(path: str, repo_id: str | None, sha: str, concurrency: int | None) -> None:
    """Index the files of a git repository at a commit."""
    settings = _load_settings()
    git_dir = _git_dir(path)

    if repo_id is None:
        try:
            repo_id = repo_id_from_remote(get_remote_url(git_dir))
        except (RuntimeError, ValueError) as e:
            raise click.ClickException(f"{e} (pass --repo-id)")
    click.echo(f"Repository: {repo_id}")

    try:
        files = load_files(git_dir, sha)
    except RuntimeError as e:
        raise click.ClickException(str(e))
    click.echo(f"Embedding {len(files)} files...")

    if concurrency is None:
        concurrency = settings.concurrency_limit

    async def run():
        async with open_pipeline(settings) as pipeline:
            return await pipeline.indexer.index_codebase(repo_id, files, concurrency_limit=concurrency)

    try:
        outcome = asyncio.run(run())
    except (CodeContextError, ValueError) as e:
        raise click.ClickException(str(e))

    for failed in outcome.failed_files:
        click.echo(f"  Failed: {failed.file_path}: {failed.error}")
    click.echo(
        f"Done. {outcome.success_count} files embedded, "
        f"{outcome.failed_count} failed, "
        f"{outcome.persisted_count} persisted."
    )


@cli.command()
@click.argument("query")
@click.option("--repo-id", required=True, help="owner/repo to search in.")
@click.option("--top-k", type=int, default=5, show_default=True)
def search(query: str, repo_id: str, top_k: int) -> None:
    """Print the indexed snippets most related to QUERY."""
    settings = _load_settings()

    async def run():
        async with open_pipeline(settings) as pipeline:
            return await pipeline.retriever.retrieve_context(query, repo_id, top_k)

    try:
        snippets = asyncio.run(run())
    except (CodeContextError, ValueError) as e:
        raise click.ClickException(str(e))

    if not snippets:
        click.echo("No related code found - index the repository first.")
        return
    for snippet in snippets:
        click.echo(snippet[:400].strip())
        click.echo()


if __name__ == "__main__":
    cli()
