"""Haystack CLI.

Adds git repositories to a pile, lists them, and searches their contents.
"""

import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Optional, TypeVar

import structlog
import typer
from sqlalchemy.exc import SQLAlchemyError

from haystack.config import PileConfig
from haystack.errors import HaystackError
from haystack.models.results import IngestionResult, SearchMatch
from haystack.pile import Pile

T = TypeVar("T")


def _configure_logging(verbose: bool) -> None:
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=lambda *args: structlog.PrintLogger(file=sys.stderr),
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if verbose else logging.INFO),
        context_class=dict,
        cache_logger_on_first_use=False,
    )


_configure_logging(verbose=False)

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="haystack",
    help="""Mirror git repositories into a local pile and search their contents.

Examples:

  # Index a repository (re-running only re-indexes when HEAD moved)
  uv run haystack --connection pile.db add-repo https://github.com/mergestat/mergestat

  # List indexed repositories
  uv run haystack --connection pile.db list-repos

  # Case-insensitive substring search across every indexed file
  uv run haystack --connection pile.db search-repos "TODO"
""",
    rich_markup_mode="markdown",
    no_args_is_help=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    connection: str = typer.Option(
        "",
        "--connection",
        "-c",
        envvar="HAYSTACK_CONNECTION",
        help="SQLite database path or SQLAlchemy URL (default: in-memory, discarded on exit)",
    ),
    clone_path: Optional[str] = typer.Option(
        None,
        "--clone-path",
        envvar="HAYSTACK_CLONE_PATH",
        help="Directory to clone repositories into (default: a temporary directory)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
) -> None:
    """Configure the pile shared by every command."""
    _configure_logging(verbose)
    ctx.obj = PileConfig(
        connection=connection,
        clone_path=Path(clone_path) if clone_path else None,
    )


@app.command("add-repo")
def add_repo(
    ctx: typer.Context,
    url: str = typer.Argument(..., help="Git URL of the repository to index"),
) -> None:
    """Clone a repository and index its files."""
    result = _run_with_pile(ctx.obj, lambda pile: pile.add_repo(url))
    _echo_ingestion(result)


@app.command("list-repos")
def list_repos(ctx: typer.Context) -> None:
    """List indexed repositories."""
    for url in _run_with_pile(ctx.obj, lambda pile: pile.list_repos()):
        typer.echo(url)


@app.command("search-repos")
def search_repos(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Substring to search for (case-insensitive)"),
) -> None:
    """Search the contents of every indexed repository."""
    matches: list[SearchMatch] = _run_with_pile(ctx.obj, lambda pile: pile.search_all_repo_contents(query))
    for match in matches:
        typer.echo(f"{match.url}\t{match.path}")


@app.command()
def version() -> None:
    """Show version information."""
    from haystack import __version__

    typer.echo(f"haystack {__version__}")


def _run_with_pile(config: PileConfig, operation: Callable[[Pile], Awaitable[T]]) -> T:
    async def run() -> T:
        async with await Pile.open(config) as pile:
            return await operation(pile)

    try:
        return asyncio.run(run())
    except (HaystackError, OSError, SQLAlchemyError, ValueError) as e:
        logger.error("command_failed", error=str(e), error_type=type(e).__name__)
        raise typer.Exit(1)


def _echo_ingestion(result: IngestionResult) -> None:
    if result.changed:
        typer.echo(f"indexed {result.url} at {result.commit_hash} ({result.files_indexed} files)")
    else:
        typer.echo(f"{result.url} unchanged at {result.commit_hash}")
