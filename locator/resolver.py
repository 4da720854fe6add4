"""
Absolute and relative resolution of locations into FileReferences.

Resolution turns a location string into a FileReference whose bytes are
available locally (fetching remote content through the ContentCache) and
enforces the hash contract: content that does not match its declared hash
is never handed out when strict checking is on.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping, Optional, Union
from urllib.parse import urljoin

from .addressing import (
    Address,
    LocalAddress,
    RepositoryAddress,
    WebAddress,
    parse_location,
)
from .cache import ContentCache
from .errors import HashMismatchError, NotRelativeError, PathEscapesRepositoryError
from .hashing import hash_file
from .types import FileReference, RelativeRef, is_relative_location

logger = logging.getLogger(__name__)

RelativeLike = Union[RelativeRef, FileReference]


class Resolver:
    """
    Resolves locations against a ContentCache.

    One resolver (and one cache) per process is enough; both are passed
    explicitly, there is no module-level state.
    """

    def __init__(self, cache: ContentCache, *, host_hints: Optional[Mapping[str, int]] = None):
        """
        Args:
            cache: Cache used for every remote location
            host_hints: Host -> number of path segments forming the repository
                        (None = built-in defaults)
        """
        self.cache = cache
        self.host_hints = host_hints

    def parse(self, loc: str, *, repo_segments: Optional[int] = None) -> Address:
        return parse_location(loc, repo_segments=repo_segments, host_hints=self.host_hints)

    # --------------------------- absolute --------------------------- #

    def resolve(
        self,
        loc: str,
        expected_hash: str = "",
        check_hash: bool = True,
        *,
        repo_segments: Optional[int] = None,
    ) -> FileReference:
        """
        Resolve an absolute location.

        Args:
            loc: Local path, web URL or repository pseudo-URL
            expected_hash: Declared SHA-256 (empty = nothing to verify)
            check_hash: Fail on mismatch (True) or only warn (False)
            repo_segments: Explicit repository/path boundary hint for repository URLs

        Raises:
            HashMismatchError: Strict check failed
            ParseError, CacheFetchError, LocationNotFoundError: Resolution failed
        """
        addr = self.parse(loc, repo_segments=repo_segments)
        resolved = self._resolve_address(addr)
        logger.debug("Resolved location \"%s\" as %s: %s", loc, addr.kind.value, resolved)
        if expected_hash:
            _check_hash(resolved, expected_hash, check_hash)
        return resolved

    def _resolve_address(self, addr: Address) -> FileReference:
        if isinstance(addr, LocalAddress):
            return self._resolve_local(addr.path)
        if isinstance(addr, WebAddress):
            return self._resolve_web(addr.url)
        if isinstance(addr, RepositoryAddress):
            return self._resolve_repository(addr)
        raise TypeError(f"Unknown address type: {type(addr).__name__}")

    def _resolve_local(self, path: str) -> FileReference:
        local = os.path.normpath(os.path.abspath(path))
        digest = hash_file(Path(local), location=path)
        return FileReference(location=local, hash=digest, local_path=Path(local))

    def _resolve_web(self, url: str) -> FileReference:
        result = self.cache.from_web(url)
        digest = hash_file(result.path, location=url)
        return FileReference(location=url, hash=digest, local_path=result.path)

    def _resolve_repository(self, addr: RepositoryAddress) -> FileReference:
        logger.debug("Attempting to resolve Git file reference: %s", addr)
        result = self.cache.locate_in_repository(addr)
        loc = str(addr)
        digest = hash_file(result.path, location=loc)
        return FileReference(location=loc, hash=digest, local_path=result.path)

    # --------------------------- relative --------------------------- #

    def resolve_relative(
        self,
        base: FileReference,
        rel: RelativeLike,
        check_hash: bool = True,
    ) -> FileReference:
        """
        Resolve `rel` against the already resolved `base`, in base's scheme.

        The declared `rel.hash` is mandatory: an empty one never matches.

        Raises:
            NotRelativeError: `rel.location` is not relative
            PathEscapesRepositoryError: `..` climbs above the repository root
            HashMismatchError: Strict check failed
        """
        if not is_relative_location(rel.location):
            raise NotRelativeError(rel.location)

        base_addr = self.parse(base.location)
        if isinstance(base_addr, LocalAddress):
            base_dir = os.path.dirname(os.path.abspath(base.local_path))
            resolved = self._resolve_local(os.path.join(base_dir, rel.location))
        elif isinstance(base_addr, WebAddress):
            url = urljoin(base.location, rel.location)
            logger.debug("Resolved relative source web reference: %s", url)
            resolved = self._resolve_web(url)
        elif isinstance(base_addr, RepositoryAddress):
            resolved = self._resolve_relative_in_repository(base_addr, rel.location)
        else:
            raise TypeError(f"Unknown address type: {type(base_addr).__name__}")

        logger.debug("Resolved relative file reference: %s", resolved)
        _check_hash(resolved, rel.hash, check_hash)
        return resolved

    def _resolve_relative_in_repository(self, base: RepositoryAddress, rel: str) -> FileReference:
        logger.debug("Attempting to resolve relative path \"%s\" against Git URL \"%s\"", rel, base)
        # the base must be cached (and up to date) before walking inside it
        self.cache.from_repository(base)
        in_repo = walk_in_repository(base, rel)
        logger.debug("Relative Git repo path: %s", in_repo)
        return self._resolve_repository(base.with_in_repo_path(in_repo))


def walk_in_repository(base: RepositoryAddress, rel: str) -> str:
    """
    Apply the `.`/`..`/named segments of `rel` to the directory holding the
    base's in-repo path (the base is assumed to be a file).
    """
    stack = [p for p in base.in_repo_path.split("/") if p][:-1]
    for part in rel.replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if not stack:
                raise PathEscapesRepositoryError(str(base), rel)
            stack.pop()
        else:
            stack.append(part)
    return "/".join(stack)


def _check_hash(resolved: FileReference, expected: str, strict: bool) -> None:
    if resolved.hash == expected.strip().lower():
        return
    if strict:
        logger.error(
            "Hash mismatch on file: %s (expected %s, actual %s)",
            resolved.location, expected, resolved.hash,
        )
        raise HashMismatchError(resolved.location, expected, resolved.hash)
    logger.warning(
        "Hash for file has changed: %s (expected %s, actual %s)",
        resolved.location, expected, resolved.hash,
    )


__all__ = ["Resolver", "RelativeLike", "walk_in_repository"]
