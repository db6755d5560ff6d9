"""Ingestion service that mirrors one git repository into the pile.

Clones the repository into a disposable staging directory, compares its head
commit with the last indexed one, and when it moved replaces the repository's
stored contents. The commit hash update, the purge of old contents and the
insertion of new contents share one transaction, so readers see either the
previous index or the new one and never a mix.
"""

import asyncio
import os
import shutil
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from haystack.errors import IngestionCancelledError
from haystack.models.base import ensure_non_empty_text
from haystack.models.enums import IngestionStatus
from haystack.models.results import IngestionResult
from haystack.models.tables import ContentRecord, RepositoryRecord
from haystack.services.git_client import GitClient
from haystack.services.pool import ConnectionPool

CLONE_DEPTH = 1
CLONE_DIR_PREFIX = "haystack-"
FLUSH_BATCH_SIZE = 200


class IngestionService:
    """Orchestrates clone, change detection and content replacement.

    Ingestions of different URLs run concurrently, bounded only by the
    connection pool. Ingestions of the same URL are serialized by a per-URL
    lock, so two callers never clone and rewrite the same repository at once.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        git_client: GitClient,
        clone_path: Path,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._pool = pool
        self._git_client = git_client
        self._clone_path = clone_path
        self._logger = logger or structlog.get_logger(__name__)
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    async def add_repo(self, url: str, cancel_event: asyncio.Event | None = None) -> IngestionResult:
        """Index the repository at ``url`` if its head commit changed.

        Args:
            url: Clone URL of the repository; also its identity in the pile.
            cancel_event: Checked before each file is stored. Once set, the
                ingestion stops and nothing it wrote becomes visible.

        Returns:
            IngestionResult describing whether contents were rewritten.

        Raises:
            ValueError: If url is blank.
            CloneError: If the clone fails.
            CommitLookupError: If the head commit cannot be read.
            FileListingError: If tracked files cannot be listed.
            IngestionCancelledError: If cancel_event was set mid-ingestion.
            OSError: If a tracked file cannot be read.
            sqlalchemy.exc.SQLAlchemyError: If a statement fails.
        """
        ensure_non_empty_text(url, "url")

        async with self._url_lock(url):
            clone_dir = await asyncio.to_thread(self._make_clone_dir)
            try:
                return await self._ingest(url, clone_dir, cancel_event)
            finally:
                await asyncio.to_thread(shutil.rmtree, clone_dir, ignore_errors=True)

    async def _ingest(self, url: str, clone_dir: Path, cancel_event: asyncio.Event | None) -> IngestionResult:
        self._logger.info("repo_clone_started", url=url, clone_dir=str(clone_dir))

        await self._git_client.clone(url, clone_dir, depth=CLONE_DEPTH)
        commit_hash = await self._git_client.latest_commit(clone_dir)

        async with self._pool.session() as session:
            async with session.begin():
                repo = await self._get_repo_record(session, url)

                if repo is not None and repo.last_indexed_commit_hash == commit_hash:
                    self._logger.info("repo_unchanged", url=url, commit_hash=commit_hash)
                    return IngestionResult(url=url, commit_hash=commit_hash, status=IngestionStatus.UNCHANGED)

                previous_hash = repo.last_indexed_commit_hash if repo is not None else None
                repo = await self._upsert_repo(session, repo, url, commit_hash)
                await session.execute(delete(ContentRecord).where(ContentRecord.repo_id == repo.id))
                files_indexed = await self._insert_contents(session, repo.id, url, clone_dir, cancel_event)

        self._logger.info(
            "repo_indexed",
            url=url,
            commit_hash=commit_hash,
            previous_commit_hash=previous_hash,
            files_indexed=files_indexed,
        )

        return IngestionResult(
            url=url,
            commit_hash=commit_hash,
            status=IngestionStatus.INDEXED,
            files_indexed=files_indexed,
        )

    async def _get_repo_record(self, session: AsyncSession, url: str) -> RepositoryRecord | None:
        result = await session.execute(select(RepositoryRecord).where(RepositoryRecord.url == url))
        return result.scalar_one_or_none()

    async def _upsert_repo(
        self,
        session: AsyncSession,
        repo: RepositoryRecord | None,
        url: str,
        commit_hash: str,
    ) -> RepositoryRecord:
        """Insert the repository row or move its commit hash forward."""
        if repo is None:
            repo = RepositoryRecord(url=url, last_indexed_commit_hash=commit_hash)
            session.add(repo)
        else:
            repo.last_indexed_commit_hash = commit_hash
        # flush assigns repo.id for a new row
        await session.flush()
        return repo

    async def _insert_contents(
        self,
        session: AsyncSession,
        repo_id: int,
        url: str,
        clone_dir: Path,
        cancel_event: asyncio.Event | None,
    ) -> int:
        files_seen = 0
        files_indexed = 0

        async for rel_path in self._git_client.list_files(clone_dir):
            if cancel_event is not None and cancel_event.is_set():
                self._logger.info("ingestion_cancelled", url=url, files_seen=files_seen)
                raise IngestionCancelledError(url, files_seen)
            files_seen += 1

            content = await asyncio.to_thread(self._read_tracked_file, clone_dir / rel_path)
            if content is None:
                self._logger.debug("file_skipped_not_regular", url=url, path=rel_path)
                continue

            session.add(ContentRecord(repo_id=repo_id, path=rel_path, content=content))
            files_indexed += 1
            if files_indexed % FLUSH_BATCH_SIZE == 0:
                await session.flush()

        await session.flush()
        return files_indexed

    def _read_tracked_file(self, file_path: Path) -> bytes | None:
        """Read a tracked path the way git stores it, or None for gitlinks."""
        if file_path.is_symlink():
            # git stores a symlink's target, not the file it points at
            return os.fsencode(os.readlink(file_path))
        if file_path.is_dir():
            # submodule checkout
            return None
        return file_path.read_bytes()

    def _make_clone_dir(self) -> Path:
        return Path(tempfile.mkdtemp(prefix=CLONE_DIR_PREFIX, dir=self._clone_path))

    @asynccontextmanager
    async def _url_lock(self, url: str) -> AsyncIterator[None]:
        """Hold the lock for ``url``, dropping it once no caller holds or awaits it."""
        lock = self._locks.setdefault(url, asyncio.Lock())
        self._lock_users[url] = self._lock_users.get(url, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[url] -= 1
            if self._lock_users[url] == 0:
                del self._lock_users[url]
                del self._locks[url]
