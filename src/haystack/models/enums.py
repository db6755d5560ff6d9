from enum import StrEnum


class IngestionStatus(StrEnum):
    INDEXED = "indexed"
    UNCHANGED = "unchanged"
