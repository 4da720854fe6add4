"""
JSON documents printed by the `locator` CLI.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .addressing import Address, LocalAddress, RepositoryAddress, WebAddress
from .cache import CacheSnapshot, CacheStats
from .contract import ResolvedContract, UpdateResult
from .types import FileReference


class _Report(BaseModel):
    model_config = ConfigDict(extra="forbid")


class AddressReport(_Report):
    kind: str
    location: str
    path: Optional[str] = None
    url: Optional[str] = None
    proto: Optional[str] = None
    user: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    repo: Optional[str] = None
    in_repo_path: Optional[str] = None
    ref: Optional[str] = None
    clone_url: Optional[str] = None

    @classmethod
    def of(cls, addr: Address) -> "AddressReport":
        if isinstance(addr, LocalAddress):
            return cls(kind=addr.kind.value, location=str(addr), path=addr.path)
        if isinstance(addr, WebAddress):
            return cls(kind=addr.kind.value, location=str(addr), url=addr.url)
        if isinstance(addr, RepositoryAddress):
            return cls(
                kind=addr.kind.value,
                location=str(addr),
                proto=addr.proto.value,
                user=addr.user,
                host=addr.host,
                port=addr.port,
                repo=addr.repo_path,
                in_repo_path=addr.in_repo_path,
                ref=addr.ref,
                clone_url=addr.repo_url(),
            )
        raise TypeError(f"Unknown address type: {type(addr).__name__}")


class FileReferenceReport(_Report):
    location: str
    hash: str = Field(description="lowercase hex SHA-256 of the content")
    local_path: str

    @classmethod
    def of(cls, ref: FileReference) -> "FileReferenceReport":
        return cls(location=ref.location, hash=ref.hash, local_path=str(ref.local_path))


class StatsReport(_Report):
    clones: int
    fetches: int
    pulls: int
    downloads: int

    @classmethod
    def of(cls, stats: CacheStats) -> "StatsReport":
        return cls(clones=stats.clones, fetches=stats.fetches, pulls=stats.pulls, downloads=stats.downloads)


class ResolveReport(_Report):
    file: FileReferenceReport
    network: StatsReport


class ContractReport(_Report):
    entrypoint: FileReferenceReport
    params: FileReferenceReport
    template: FileReferenceReport
    template_format: str
    upstream: Optional[Dict[str, str]] = None
    network: StatsReport

    @classmethod
    def of(cls, contract: ResolvedContract, stats: CacheStats) -> "ContractReport":
        upstream = None
        if contract.upstream is not None:
            upstream = {"location": contract.upstream.location, "hash": contract.upstream.hash}
        return cls(
            entrypoint=FileReferenceReport.of(contract.entrypoint),
            params=FileReferenceReport.of(contract.params),
            template=FileReferenceReport.of(contract.template),
            template_format=contract.descriptor.template.format,
            upstream=upstream,
            network=StatsReport.of(stats),
        )


class UpdateReport(_Report):
    path: str
    changed: bool
    hashes: Dict[str, str]
    previous: Dict[str, str]

    @classmethod
    def of(cls, result: UpdateResult) -> "UpdateReport":
        return cls(path=str(result.path), changed=result.changed, hashes=result.hashes, previous=result.previous)


class CacheReport(_Report):
    path: str
    exists: bool
    repositories: int
    web_files: int
    size_bytes: int
    tool_version: str

    @classmethod
    def of(cls, snap: CacheSnapshot, tool_version: str) -> "CacheReport":
        return cls(
            path=str(snap.path),
            exists=snap.exists,
            repositories=snap.repositories,
            web_files=snap.web_files,
            size_bytes=snap.size_bytes,
            tool_version=tool_version,
        )


__all__ = [
    "AddressReport",
    "FileReferenceReport",
    "StatsReport",
    "ResolveReport",
    "ContractReport",
    "UpdateReport",
    "CacheReport",
]
