"""SQLModel table definitions for the pile.

Table models are kept apart from the frozen Pydantic domain models in
repository.py and results.py: the ORM needs mutable rows (the ingestion
pipeline updates a repository's commit hash in place), while domain models
stay immutable once handed to callers.

Only the url uniqueness constraint is declared. ``repo_contents.repo_id``
refers to ``repos.id`` logically but carries no foreign key, and there is no
cascading delete. SQLModel requires a primary key, so content rows get a
surrogate ``id`` that callers never see.
"""

from sqlalchemy import LargeBinary
from sqlmodel import Field, SQLModel


class RepositoryRecord(SQLModel, table=True):
    """One row per indexed repository."""

    __tablename__ = "repos"

    id: int | None = Field(default=None, primary_key=True)
    url: str = Field(unique=True)
    last_indexed_commit_hash: str | None = None


class ContentRecord(SQLModel, table=True):
    """One row per tracked file of a repository as of its last indexed commit."""

    __tablename__ = "repo_contents"

    id: int | None = Field(default=None, primary_key=True)
    repo_id: int
    path: str
    content: bytes = Field(sa_type=LargeBinary)
