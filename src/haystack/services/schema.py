"""Schema manager: creates the pile's tables on open."""

import structlog
from sqlmodel import SQLModel

from haystack.models.tables import ContentRecord, RepositoryRecord
from haystack.services.pool import ConnectionPool

PILE_TABLES = (RepositoryRecord.__table__, ContentRecord.__table__)


async def ensure_schema(
    pool: ConnectionPool,
    logger: structlog.stdlib.BoundLogger | None = None,
) -> None:
    """Create the repos and repo_contents tables if they don't exist.

    Safe to run against a database that already has the tables. Errors are
    left to the caller, which must not hand out a pile whose schema failed.
    """
    logger = logger or structlog.get_logger(__name__)
    async with pool.connection() as conn:
        await conn.run_sync(SQLModel.metadata.create_all, tables=list(PILE_TABLES), checkfirst=True)
    logger.info("schema_ensured", tables=[table.name for table in PILE_TABLES])
