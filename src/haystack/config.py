"""Configuration for opening a pile."""

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

MEMORY_CONNECTION = ":memory:"


def default_max_workers() -> int:
    return os.cpu_count() or 1


class PileConfig(BaseModel):
    """Options accepted by ``Pile.open``.

    Attributes:
        connection: Where the data lives. Empty or ``":memory:"`` selects a
            private in-memory database shared by every session of the pile.
            A filesystem path selects an on-disk SQLite file. Anything
            containing ``://`` is used verbatim as a SQLAlchemy async URL.
        clone_path: Parent directory for per-ingestion clone directories.
            ``None`` means a temporary directory owned and removed by the pile.
        max_workers: Upper bound on concurrently borrowed connections.
    """

    connection: str = ""
    clone_path: Path | None = None
    max_workers: int = Field(default_factory=default_max_workers, ge=1)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("connection", mode="before")
    @classmethod
    def _normalize_connection(cls, value: str | None) -> str:
        if value is None:
            return ""
        return value.strip()

    @property
    def in_memory(self) -> bool:
        return self.connection in ("", MEMORY_CONNECTION)
