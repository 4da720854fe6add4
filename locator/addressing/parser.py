"""
Location string classification and parsing.

Grammar:
  - Web:        ^https?://
  - Repository: ^git, in two flavours:
      git+https://<host>/<path>[#<fragment>]          (standard URL syntax)
      (git|git+ssh)://[<user>@]<host>[:/]<path>[#<fragment>]
  - Local:      anything else (failure is deferred to filesystem access)
"""

from __future__ import annotations

import re
from typing import Mapping, Optional, Tuple
from urllib.parse import urlsplit

from ..errors import ParseError
from .types import (
    Address,
    AddressKind,
    HTTPS_PORT,
    LocalAddress,
    RepoProto,
    RepositoryAddress,
    SSH_PORT,
    WebAddress,
)

# Hosts that group repositories as <owner>/<name> without requiring a .git suffix.
DEFAULT_HOST_HINTS: Mapping[str, int] = {"github.com": 2}

_SSH_URL_RE = re.compile(
    r"(?P<proto>[a-z+]+)://"
    r"(?:(?P<user>[A-Za-z0-9._-]+)@)?"
    r"(?P<host>[a-z0-9.-]+)[:/]"
    r"(?P<path>[a-zA-Z0-9 ./-]+)"
    r"(?:#(?P<fragment>[a-zA-Z0-9/.-]+))?"
)

_SSH_PROTOS = ("git", "git+ssh")


def _check_host(raw: str, host: str) -> None:
    # "..", ".x" or "a..b" would map outside the host directory of the cache
    if any(not label for label in host.split(".")):
        raise ParseError(raw, f"invalid host '{host}'")


def classify(loc: str) -> AddressKind:
    """Pure prefix heuristic; never fails."""
    if loc.startswith("http://") or loc.startswith("https://"):
        return AddressKind.WEB
    if loc.startswith("git"):
        return AddressKind.REPOSITORY
    return AddressKind.LOCAL


def split_repo_path(
    host: str,
    path: str,
    *,
    repo_segments: Optional[int] = None,
    host_hints: Optional[Mapping[str, int]] = None,
) -> Tuple[str, str]:
    """
    Split a URL path into (repository path, in-repository path).

    Segments are accumulated into the repository path until one of them
    ends in `.git`, or until `repo_segments` segments have been taken.
    Without an explicit `repo_segments`, the per-host hint is used.
    The boundary is best-effort for hosts with arbitrary nesting.
    """
    if repo_segments is None:
        hints = DEFAULT_HOST_HINTS if host_hints is None else host_hints
        repo_segments = hints.get(host)

    repo_parts: list[str] = []
    path_parts: list[str] = []
    parsing_repo = True
    for part in path.lstrip("/").split("/"):
        if parsing_repo:
            repo_parts.append(part)
            if part.endswith(".git") or (repo_segments is not None and len(repo_parts) == repo_segments):
                parsing_repo = False
        else:
            path_parts.append(part)
    return "/".join(repo_parts), "/".join(path_parts)


def parse_repository(
    raw: str,
    *,
    repo_segments: Optional[int] = None,
    host_hints: Optional[Mapping[str, int]] = None,
) -> RepositoryAddress:
    if raw.startswith("git+https://"):
        return _parse_https(raw, repo_segments=repo_segments, host_hints=host_hints)

    m = _SSH_URL_RE.fullmatch(raw)
    if m is None:
        raise ParseError(raw, "does not match <proto>://<host>[:/]<path>[#<ref>]")
    proto = m.group("proto")
    if proto not in _SSH_PROTOS:
        raise ParseError(raw, f"unrecognized protocol '{proto}'")

    host = m.group("host")
    _check_host(raw, host)
    repo, in_repo = split_repo_path(
        host, m.group("path"), repo_segments=repo_segments, host_hints=host_hints
    )
    if not repo:
        raise ParseError(raw, "missing repository path")
    return RepositoryAddress(
        proto=RepoProto.SSH,
        host=host,
        port=SSH_PORT,
        repo_path=repo,
        in_repo_path=in_repo,
        ref=m.group("fragment") or None,
        user=m.group("user") or None,
    )


def _parse_https(
    raw: str,
    *,
    repo_segments: Optional[int],
    host_hints: Optional[Mapping[str, int]],
) -> RepositoryAddress:
    try:
        u = urlsplit(raw)
        port = u.port
    except ValueError as e:
        raise ParseError(raw, str(e)) from e
    host = u.hostname or ""
    if not host:
        raise ParseError(raw, "missing host")
    _check_host(raw, host)
    repo, in_repo = split_repo_path(
        host, u.path, repo_segments=repo_segments, host_hints=host_hints
    )
    if not repo:
        raise ParseError(raw, "missing repository path")
    return RepositoryAddress(
        proto=RepoProto.HTTPS,
        host=host,
        port=port or HTTPS_PORT,
        repo_path=repo,
        in_repo_path=in_repo,
        ref=u.fragment or None,
        user=u.username or None,
    )


def parse_location(
    loc: str,
    *,
    repo_segments: Optional[int] = None,
    host_hints: Optional[Mapping[str, int]] = None,
) -> Address:
    kind = classify(loc)
    if kind is AddressKind.WEB:
        return WebAddress(loc)
    if kind is AddressKind.REPOSITORY:
        return parse_repository(loc, repo_segments=repo_segments, host_hints=host_hints)
    return LocalAddress(loc)


__all__ = [
    "DEFAULT_HOST_HINTS",
    "classify",
    "split_repo_path",
    "parse_repository",
    "parse_location",
]
