from typing import Any, ClassVar

from pydantic import Field, ValidationInfo, field_validator

from haystack.models.base import RecordModel, ensure_commit_hash, ensure_non_empty_text


class Repository(RecordModel):
    SCHEMA_VERSION: ClassVar[str] = "repository.v1"

    schema_version: str = Field(default=SCHEMA_VERSION)
    id: int = Field(ge=1)
    url: str
    last_indexed_commit_hash: str | None = None

    @field_validator("url")
    @classmethod
    def _ensure_url(cls, value: str, info: ValidationInfo) -> str:
        return ensure_non_empty_text(value, info.field_name or "url")

    @field_validator("last_indexed_commit_hash", mode="before")
    @classmethod
    def _validate_commit_hash(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return ensure_commit_hash(value)
