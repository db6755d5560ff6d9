from typing import Any, ClassVar

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from haystack.models.base import RecordModel, ensure_commit_hash, ensure_non_empty_text
from haystack.models.enums import IngestionStatus


class IngestionResult(BaseModel):
    """Outcome of a single add_repo call."""

    url: str
    commit_hash: str
    status: IngestionStatus
    files_indexed: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @field_validator("commit_hash", mode="before")
    @classmethod
    def _validate_commit_hash(cls, value: Any) -> str:
        return ensure_commit_hash(value)

    @property
    def changed(self) -> bool:
        return self.status is IngestionStatus.INDEXED


class SearchMatch(RecordModel):
    """A file whose content matched a search, with its owning repository."""

    SCHEMA_VERSION: ClassVar[str] = "search_match.v1"

    schema_version: str = Field(default=SCHEMA_VERSION)
    url: str
    path: str

    @field_validator("url", "path")
    @classmethod
    def _ensure_non_empty(cls, value: str, info: ValidationInfo) -> str:
        return ensure_non_empty_text(value, info.field_name or "value")


__all__ = ["IngestionResult", "SearchMatch"]
