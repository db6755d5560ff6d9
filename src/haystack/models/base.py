from typing import Any, ClassVar, Mapping, Type, TypeVar

from pydantic import BaseModel, ConfigDict, model_validator

T_Model = TypeVar("T_Model", bound="RecordModel")


class SchemaVersioned(BaseModel):
    """Base class enforcing schema_version defaults and immutability."""

    SCHEMA_VERSION: ClassVar[str]
    schema_version: str

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _apply_default_schema_version(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            if "schema_version" not in data:
                data = dict(data)
                data["schema_version"] = cls.SCHEMA_VERSION
        return data

    @model_validator(mode="after")
    def _validate_schema_version(self) -> "SchemaVersioned":
        if self.schema_version != self.SCHEMA_VERSION:
            raise ValueError(f"expected schema_version '{self.SCHEMA_VERSION}'")
        return self


class RecordModel(SchemaVersioned):
    """Builds domain models from storage rows."""

    @classmethod
    def from_record(cls: Type[T_Model], data: Mapping[str, Any] | BaseModel) -> T_Model:
        return cls.model_validate(data)


# SHA-1 and SHA-256 object formats
COMMIT_HASH_LENGTHS = (40, 64)


def ensure_commit_hash(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError("expected string commit hash")
    digest = value.strip().lower()
    if not digest:
        raise ValueError("commit hash cannot be empty")
    if any(ch not in "0123456789abcdef" for ch in digest):
        raise ValueError("commit hash must contain only hexadecimal characters")
    if len(digest) not in COMMIT_HASH_LENGTHS:
        raise ValueError("commit hash must be 40 or 64 hexadecimal characters")
    return digest


def ensure_non_empty_text(value: str, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    if not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value
