"""Exceptions raised by the pile and its services."""


class HaystackError(Exception):
    """Base class for all haystack errors."""


class StoreOpenError(HaystackError):
    """The pile could not be opened (bad connection target, staging dir, or schema)."""


class StoreClosedError(HaystackError):
    """An operation was attempted on a pile that has already been closed."""


class CloneError(HaystackError):
    """Cloning a repository failed."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"failed to clone {url}: {reason}")
        self.url = url


class CommitLookupError(HaystackError):
    """The latest commit of a cloned repository could not be read."""

    def __init__(self, location: str, reason: str) -> None:
        super().__init__(f"failed to read latest commit in {location}: {reason}")
        self.location = location


class FileListingError(HaystackError):
    """Tracked files of a cloned repository could not be listed."""


class IngestionCancelledError(HaystackError):
    """Ingestion stopped because its cancel event was set."""

    def __init__(self, url: str, files_seen: int) -> None:
        super().__init__(f"ingestion of {url} cancelled after {files_seen} files")
        self.url = url
        self.files_seen = files_seen
