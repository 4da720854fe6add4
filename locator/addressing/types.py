"""
Data types for the addressing system.

A location string is parsed into one of three address variants:
LocalAddress, WebAddress or RepositoryAddress. The set is closed:
dispatch code matches all three and treats anything else as a bug.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

DEFAULT_REF = "master"
SSH_PORT = 22
HTTPS_PORT = 443


class AddressKind(str, Enum):
    LOCAL = "local"
    WEB = "web"
    REPOSITORY = "repository"


class RepoProto(str, Enum):
    """Protocol by which a Git repository is accessed."""
    SSH = "ssh"
    HTTPS = "https"

    @property
    def default_port(self) -> int:
        return SSH_PORT if self is RepoProto.SSH else HTTPS_PORT


@dataclass(frozen=True)
class LocalAddress:
    """Opaque filesystem path (absolute or relative to the working directory)."""
    path: str

    kind = AddressKind.LOCAL

    def __str__(self) -> str:
        return self.path


@dataclass(frozen=True)
class WebAddress:
    """Standard HTTP/HTTPS URL."""
    url: str

    kind = AddressKind.WEB

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class RepositoryAddress:
    """
    Parsed form of a Git pseudo-URL.

    `repo_path` and `in_repo_path` partition the URL path: the first one
    identifies the repository (e.g. `company/repo.git`), the second one
    the file or folder inside it (e.g. `some/path/file.txt`).
    """
    proto: RepoProto
    host: str
    port: int
    repo_path: str
    in_repo_path: str = ""
    ref: Optional[str] = None     # None = default branch
    user: Optional[str] = None    # kept separate from host, never "user@host"

    kind = AddressKind.REPOSITORY

    def effective_ref(self, default: str = DEFAULT_REF) -> str:
        return self.ref or default

    def _host_port(self) -> str:
        if self.port != self.proto.default_port:
            return f"{self.host}:{self.port}"
        return self.host

    def repo_url(self) -> str:
        """
        Canonical clone URL: no in-repo path, no ref.

        SSH repositories use the scp-like form `user@host:repo`,
        HTTPS ones a plain `https://host[:port]/repo` URL.
        """
        if self.proto is RepoProto.SSH:
            return f"{self.user or 'git'}@{self.host}:{self.repo_path}"
        auth = f"{self.user}@" if self.user else ""
        return f"https://{auth}{self._host_port()}/{self.repo_path}"

    def cache_key(self) -> str:
        """Host + repository path; identical for ssh/https access to the same repo."""
        return f"{self.host}/{self.repo_path}"

    def with_in_repo_path(self, in_repo_path: str) -> "RepositoryAddress":
        return replace(self, in_repo_path=in_repo_path)

    def with_ref(self, ref: Optional[str]) -> "RepositoryAddress":
        return replace(self, ref=ref)

    def __str__(self) -> str:
        auth = f"{self.user}@" if self.user else ""
        if self.proto is RepoProto.SSH:
            head = f"git://{auth}{self.host}:{self.repo_path}"
        else:
            head = f"git+https://{auth}{self._host_port()}/{self.repo_path}"
        path = f"/{self.in_repo_path}" if self.in_repo_path else ""
        ref = f"#{self.ref}" if self.ref else ""
        return f"{head}{path}{ref}"


Address = Union[LocalAddress, WebAddress, RepositoryAddress]


__all__ = [
    "DEFAULT_REF",
    "SSH_PORT",
    "HTTPS_PORT",
    "AddressKind",
    "RepoProto",
    "LocalAddress",
    "WebAddress",
    "RepositoryAddress",
    "Address",
]
