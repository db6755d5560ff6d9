"""The pile: an explicitly owned store of indexed git repositories.

A Pile owns its connection pool and clone staging directory. Open one with
``Pile.open`` (or ``haystack.services.factory.open_pile``), pass it to
whatever needs it, and close it exactly when done.
"""

import asyncio
import tempfile
from pathlib import Path
from types import TracebackType

import structlog
from sqlalchemy.exc import SQLAlchemyError

from haystack.config import PileConfig
from haystack.errors import StoreClosedError, StoreOpenError
from haystack.models.repository import Repository
from haystack.models.results import IngestionResult, SearchMatch
from haystack.services.catalog import CatalogReader
from haystack.services.git_client import GitClient
from haystack.services.ingest import CLONE_DIR_PREFIX, IngestionService
from haystack.services.pool import ConnectionPool, create_async_engine_from_connection
from haystack.services.schema import ensure_schema
from haystack.services.search import ContentSearch


class Pile:
    """Handle to an open pile. Construct through ``Pile.open``."""

    def __init__(
        self,
        config: PileConfig,
        pool: ConnectionPool,
        ingestion: IngestionService,
        catalog: CatalogReader,
        content_search: ContentSearch,
        clone_path: Path,
        owned_clone_dir: tempfile.TemporaryDirectory | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._config = config
        self._pool = pool
        self._ingestion = ingestion
        self._catalog = catalog
        self._content_search = content_search
        self._clone_path = clone_path
        self._owned_clone_dir = owned_clone_dir
        self._logger = logger or structlog.get_logger(__name__)
        self._closed = False

    @classmethod
    async def open(
        cls,
        config: PileConfig | None = None,
        *,
        git_client: GitClient | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> "Pile":
        """Open a pile: build the pool, prepare staging, and ensure the schema.

        Nothing is leaked if a step fails; the caller gets either a ready
        pile or an exception.

        Raises:
            StoreOpenError: If the connection target is invalid, the staging
                directory cannot be created, or the schema cannot be applied.
        """
        config = config or PileConfig()
        logger = logger or structlog.get_logger(__name__)

        try:
            engine = create_async_engine_from_connection(config.connection, config.max_workers)
        except SQLAlchemyError as e:
            raise StoreOpenError(f"invalid connection target {config.connection!r}: {e}") from e

        pool = ConnectionPool(engine, config.max_workers, logger=logger)
        owned_clone_dir: tempfile.TemporaryDirectory | None = None

        try:
            if config.clone_path is None:
                owned_clone_dir = tempfile.TemporaryDirectory(prefix=CLONE_DIR_PREFIX)
                clone_path = Path(owned_clone_dir.name)
            else:
                clone_path = config.clone_path
                await asyncio.to_thread(clone_path.mkdir, parents=True, exist_ok=True)
            await ensure_schema(pool, logger=logger)
        except (OSError, SQLAlchemyError) as e:
            await cls._release(pool, owned_clone_dir)
            raise StoreOpenError(f"failed to open pile: {e}") from e
        except BaseException:
            await cls._release(pool, owned_clone_dir)
            raise

        pile = cls(
            config=config,
            pool=pool,
            ingestion=IngestionService(
                pool=pool,
                git_client=git_client or GitClient(logger=logger),
                clone_path=clone_path,
                logger=logger,
            ),
            catalog=CatalogReader(pool=pool, logger=logger),
            content_search=ContentSearch(pool=pool, logger=logger),
            clone_path=clone_path,
            owned_clone_dir=owned_clone_dir,
            logger=logger,
        )
        logger.info(
            "pile_opened",
            in_memory=config.in_memory,
            clone_path=str(clone_path),
            max_workers=pool.max_workers,
        )
        return pile

    @property
    def config(self) -> PileConfig:
        return self._config

    @property
    def clone_path(self) -> Path:
        return self._clone_path

    @property
    def closed(self) -> bool:
        return self._closed

    async def add_repo(self, url: str, cancel_event: asyncio.Event | None = None) -> IngestionResult:
        """Clone ``url`` and index it if its head commit changed."""
        self._ensure_open()
        return await self._ingestion.add_repo(url, cancel_event=cancel_event)

    async def list_repos(self) -> list[str]:
        """Return all indexed repository URLs."""
        self._ensure_open()
        return await self._catalog.list_repos()

    async def get_repo(self, url: str) -> Repository | None:
        self._ensure_open()
        return await self._catalog.get_repo(url)

    async def search_all_repo_contents(self, query: str) -> list[SearchMatch]:
        """Return every file in every repository whose content contains ``query``."""
        self._ensure_open()
        return await self._content_search.search(query)

    search = search_all_repo_contents

    async def close(self) -> None:
        """Release the pool and any staging directory the pile created."""
        if self._closed:
            return
        self._closed = True
        await self._release(self._pool, self._owned_clone_dir)
        self._logger.info("pile_closed")

    async def __aenter__(self) -> "Pile":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError("pile has been closed")

    @staticmethod
    async def _release(pool: ConnectionPool, owned_clone_dir: tempfile.TemporaryDirectory | None) -> None:
        await pool.dispose()
        if owned_clone_dir is not None:
            await asyncio.to_thread(owned_clone_dir.cleanup)
