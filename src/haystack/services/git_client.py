"""Git collaborator backed by GitPython.

GitPython drives the git binary synchronously, so each call is wrapped with
asyncio.to_thread() to keep the event loop responsive while a clone runs.
"""

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

import git
import structlog

from haystack.errors import CloneError, CommitLookupError, FileListingError


class GitClient:
    """Clones repositories and inspects their working trees."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._logger = logger or structlog.get_logger(__name__)

    async def clone(self, url: str, target_dir: Path, depth: int = 1) -> None:
        """Shallow-clone ``url`` into ``target_dir``.

        Raises:
            CloneError: If git fails for any reason (network, auth, bad URL).
        """
        self._logger.debug("git_clone_started", url=url, target_dir=str(target_dir), depth=depth)
        try:
            repo = await asyncio.to_thread(
                git.Repo.clone_from,
                url,
                str(target_dir),
                depth=depth,
                single_branch=True,
            )
        except git.exc.GitError as e:
            raise CloneError(url, str(e)) from e
        repo.close()
        self._logger.debug("git_clone_completed", url=url)

    async def latest_commit(self, repo_dir: Path) -> str:
        """Return the hex SHA of HEAD in ``repo_dir``.

        Raises:
            CommitLookupError: If the directory is not a repository or HEAD
                does not point at a commit (e.g. an empty repository).
        """
        try:
            return await asyncio.to_thread(self._head_sha, repo_dir)
        except (git.exc.GitError, ValueError) as e:
            raise CommitLookupError(str(repo_dir), str(e)) from e

    async def list_files(self, repo_dir: Path) -> AsyncIterator[str]:
        """Yield paths of tracked files relative to the repository root.

        Raises:
            FileListingError: If git cannot list the index.
        """
        try:
            output = await asyncio.to_thread(self._ls_files, repo_dir)
        except git.exc.GitError as e:
            raise FileListingError(f"failed to list files in {repo_dir}: {e}") from e

        for path in output.split("\0"):
            if path:
                yield path

    def _head_sha(self, repo_dir: Path) -> str:
        repo = git.Repo(repo_dir)
        try:
            return repo.head.commit.hexsha
        finally:
            repo.close()

    def _ls_files(self, repo_dir: Path) -> str:
        repo = git.Repo(repo_dir)
        try:
            # -z keeps paths with newlines or quotes intact
            return repo.git.ls_files("-z")
        finally:
            repo.close()
