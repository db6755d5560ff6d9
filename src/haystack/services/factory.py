"""Factory functions for opening piles.

Provides a production helper that opens a pile from configuration and always
closes it, and a test helper that opens an in-memory pile with an injectable
git client for fast, isolated tests.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog

from haystack.config import PileConfig
from haystack.pile import Pile
from haystack.services.git_client import GitClient


@asynccontextmanager
async def open_pile(
    connection: str = "",
    clone_path: Path | None = None,
    max_workers: int | None = None,
    git_client: GitClient | None = None,
) -> AsyncIterator[Pile]:
    """Open a pile for the duration of an ``async with`` block.

    Args:
        connection: SQLite file path, SQLAlchemy URL, or empty for in-memory.
        clone_path: Parent directory for clones. Defaults to a temporary
            directory that is removed when the pile closes.
        max_workers: Connection pool bound. Defaults to the CPU count.
        git_client: Git collaborator to use instead of the GitPython client.

    Yields:
        An open Pile, closed when the block exits.
    """
    logger = structlog.get_logger(__name__)

    options: dict[str, object] = {"connection": connection, "clone_path": clone_path}
    if max_workers is not None:
        options["max_workers"] = max_workers
    config = PileConfig.model_validate(options)

    pile = await Pile.open(config, git_client=git_client, logger=logger)
    try:
        yield pile
    finally:
        await pile.close()


async def create_test_pile(
    git_client: GitClient | None = None,
    clone_path: Path | None = None,
) -> Pile:
    """Open a Pile backed by in-memory SQLite for testing.

    Each call creates an independent database, so tests don't interfere.
    The caller is responsible for closing the pile.

    Args:
        git_client: Fake or real git collaborator.
        clone_path: Parent directory for clones. Defaults to a temporary
            directory owned by the pile.

    Returns:
        An open Pile with in-memory storage.
    """
    logger = structlog.get_logger(__name__)
    config = PileConfig(connection="", clone_path=clone_path, max_workers=1)
    return await Pile.open(config, git_client=git_client, logger=logger)
