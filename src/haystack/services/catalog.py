"""Catalog reader for the repositories stored in the pile."""

import structlog
from sqlalchemy import select

from haystack.models.repository import Repository
from haystack.models.tables import RepositoryRecord
from haystack.services.pool import ConnectionPool


class CatalogReader:
    """Read-only access to the repos table."""

    def __init__(
        self,
        pool: ConnectionPool,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._pool = pool
        self._logger = logger or structlog.get_logger(__name__)

    async def list_repos(self) -> list[str]:
        """Return every stored repository URL in insertion order."""
        async with self._pool.session() as session:
            result = await session.execute(select(RepositoryRecord.url).order_by(RepositoryRecord.id))
            urls = list(result.scalars().all())
        self._logger.debug("repos_listed", count=len(urls))
        return urls

    async def get_repo(self, url: str) -> Repository | None:
        """Retrieve a repository by its URL.

        Args:
            url: The repository URL to look up.

        Returns:
            The Repository if it has been indexed, None otherwise.
        """
        async with self._pool.session() as session:
            result = await session.execute(select(RepositoryRecord).where(RepositoryRecord.url == url))
            record = result.scalar_one_or_none()
            if record is None:
                return None
            return self._record_to_repository(record)

    def _record_to_repository(self, record: RepositoryRecord) -> Repository:
        return Repository.from_record(record.model_dump())
