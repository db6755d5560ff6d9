"""Case-insensitive substring search over stored file contents."""

import structlog
from sqlalchemy import Text, cast, func, select

from haystack.models.results import SearchMatch
from haystack.models.tables import ContentRecord, RepositoryRecord
from haystack.services.pool import ConnectionPool


class ContentSearch:
    """Scans every stored file for a substring, ignoring ASCII case.

    There is no ranking: matches come back ordered by repository insertion
    order, then path.
    """

    def __init__(
        self,
        pool: ConnectionPool,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._pool = pool
        self._logger = logger or structlog.get_logger(__name__)

    async def search(self, query: str) -> list[SearchMatch]:
        """Find files across all repositories whose content contains ``query``.

        An empty query matches every stored file.

        Args:
            query: Substring to look for. SQLite's lower() folds ASCII only,
                so non-ASCII letters must match case exactly.

        Returns:
            One SearchMatch per matching file, carrying its repository URL.

        Raises:
            TypeError: If query is not a string.
        """
        if not isinstance(query, str):
            raise TypeError("query must be a string")

        content_text = func.lower(cast(ContentRecord.content, Text))
        statement = (
            select(RepositoryRecord.url, ContentRecord.path)
            .join(RepositoryRecord, RepositoryRecord.id == ContentRecord.repo_id)
            .where(func.instr(content_text, func.lower(query)) > 0)
            .order_by(RepositoryRecord.id, ContentRecord.path)
        )

        async with self._pool.session() as session:
            result = await session.execute(statement)
            matches = [SearchMatch(url=url, path=path) for url, path in result.all()]

        self._logger.debug("search_completed", query=query, match_count=len(matches))
        return matches
