"""Unit tests for the CatalogReader service."""

from collections.abc import AsyncIterator

import pytest

from haystack.models.repository import Repository
from haystack.models.tables import RepositoryRecord
from haystack.services.catalog import CatalogReader
from haystack.services.pool import ConnectionPool, create_async_engine_from_connection
from haystack.services.schema import ensure_schema

_HASH = "a94a8fe5ccb19ba61c4c0873d391e987982fbbd3"


@pytest.fixture
async def pool() -> AsyncIterator[ConnectionPool]:
    pool = ConnectionPool(create_async_engine_from_connection(":memory:", 1), max_workers=1)
    await ensure_schema(pool)
    yield pool
    await pool.dispose()


@pytest.fixture
def catalog(pool: ConnectionPool) -> CatalogReader:
    return CatalogReader(pool=pool)


async def _insert_repos(pool: ConnectionPool, *records: RepositoryRecord) -> None:
    async with pool.session() as session:
        async with session.begin():
            session.add_all(records)


class TestCatalogReaderListRepos:
    """Tests for listing repository URLs."""

    async def test_empty_pile_lists_nothing(self, catalog: CatalogReader) -> None:
        assert await catalog.list_repos() == []

    async def test_lists_urls_in_insertion_order(self, catalog: CatalogReader, pool: ConnectionPool) -> None:
        await _insert_repos(
            pool,
            RepositoryRecord(url="https://example/zeta", last_indexed_commit_hash=_HASH),
            RepositoryRecord(url="https://example/alpha", last_indexed_commit_hash=_HASH),
        )

        assert await catalog.list_repos() == ["https://example/zeta", "https://example/alpha"]


class TestCatalogReaderGetRepo:
    """Tests for looking up a single repository."""

    async def test_returns_domain_model(self, catalog: CatalogReader, pool: ConnectionPool) -> None:
        await _insert_repos(pool, RepositoryRecord(url="https://example/repo", last_indexed_commit_hash=_HASH))

        repo = await catalog.get_repo("https://example/repo")

        assert isinstance(repo, Repository)
        assert repo.id == 1
        assert repo.url == "https://example/repo"
        assert repo.last_indexed_commit_hash == _HASH

    async def test_unknown_url_returns_none(self, catalog: CatalogReader) -> None:
        assert await catalog.get_repo("https://example/missing") is None

    async def test_url_match_is_exact(self, catalog: CatalogReader, pool: ConnectionPool) -> None:
        await _insert_repos(pool, RepositoryRecord(url="https://example/repo", last_indexed_commit_hash=_HASH))

        assert await catalog.get_repo("https://example/repo.git") is None
