"""
contract-locator: resolves local paths, web URLs and Git repository
pseudo-URLs into hash-verified, locally cached files.
"""

from .addressing import parse_location
from .cache import ContentCache
from .errors import LocatorUserError
from .resolver import Resolver
from .types import FileReference, RelativeRef
from .version import tool_version

__all__ = [
    "ContentCache",
    "FileReference",
    "LocatorUserError",
    "RelativeRef",
    "Resolver",
    "parse_location",
    "tool_version",
]
