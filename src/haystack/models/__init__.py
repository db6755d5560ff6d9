from haystack.models.enums import IngestionStatus
from haystack.models.repository import Repository
from haystack.models.results import IngestionResult, SearchMatch

__all__ = [
    "IngestionResult",
    "IngestionStatus",
    "Repository",
    "SearchMatch",
]
