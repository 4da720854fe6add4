"""
Addressing package: turns location strings into typed addresses.

Provides:
- classify: prefix heuristic (local / web / repository)
- parse_location / parse_repository: string -> Address
- LocalAddress, WebAddress, RepositoryAddress: the closed set of address variants
"""

from .parser import DEFAULT_HOST_HINTS, classify, parse_location, parse_repository, split_repo_path
from .types import (
    DEFAULT_REF,
    Address,
    AddressKind,
    LocalAddress,
    RepoProto,
    RepositoryAddress,
    WebAddress,
)

__all__ = [
    "DEFAULT_HOST_HINTS",
    "DEFAULT_REF",
    "Address",
    "AddressKind",
    "LocalAddress",
    "RepoProto",
    "RepositoryAddress",
    "WebAddress",
    "classify",
    "parse_location",
    "parse_repository",
    "split_repo_path",
]
