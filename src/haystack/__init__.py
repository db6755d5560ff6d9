"""haystack - Mirror git repositories into a local pile and search their contents."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("haystack")
except PackageNotFoundError:
    __version__ = "unknown"

__all__ = ["__version__"]
