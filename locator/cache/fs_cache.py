from __future__ import annotations

import logging
import os
import posixpath
import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit

import httpx

from ..addressing.types import DEFAULT_REF, RepositoryAddress
from ..errors import CacheFetchError
from ..vcs import GitCli, GitTransport
from ..web import download_file
from .locks import CheckoutLock

logger = logging.getLogger(__name__)

GIT_DIR = "git"
WEB_DIR = "web"
LOCKS_DIR = "locks"

DEFAULT_FETCH_TIMEOUT = 300.0
DEFAULT_DOWNLOAD_TIMEOUT = 60.0


@dataclass(frozen=True)
class CheckoutResult:
    """Outcome of bringing a repository checkout up to date."""
    path: Path            # checkout directory (or a path inside it, see locate_in_repository)
    clone_url: str
    ref: str
    cloned: bool
    fetched: bool
    pulled: bool


@dataclass(frozen=True)
class DownloadResult:
    path: Path
    url: str
    status_code: int
    size: int


@dataclass
class CacheStats:
    """Per-process counters of network operations performed by the cache."""
    clones: int = 0
    fetches: int = 0
    pulls: int = 0
    downloads: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, operation: str) -> None:
        # resolutions of different repositories run concurrently
        with self._lock:
            setattr(self, operation, getattr(self, operation) + 1)

    @property
    def network_operations(self) -> int:
        return self.clones + self.fetches + self.pulls + self.downloads


@dataclass(frozen=True)
class CacheSnapshot:
    path: Path
    exists: bool
    repositories: int
    web_files: int
    size_bytes: int


@dataclass
class ContentCache:
    """
    Persistent, filesystem-backed store of remote content.

    Layout under `root`:
      • git/<host>[_<port>]/<repo path>: live Git checkouts
      • web/<host>[_<port>]/<url path>: downloaded files
      • locks/: transient checkout locks

    There is no index file: existence of a directory is the existence check.
    Nothing is ever evicted. Every resolution of a repository fetches from
    origin, and every web resolution downloads again; the counters in `stats`
    make that cost visible to callers.
    """
    root: Path
    git: GitTransport = field(default_factory=GitCli)
    http_client: Optional[httpx.Client] = None
    default_ref: str = DEFAULT_REF
    fetch_timeout: Optional[float] = DEFAULT_FETCH_TIMEOUT
    download_timeout: Optional[float] = DEFAULT_DOWNLOAD_TIMEOUT
    lock_wait_timeout: Optional[float] = None
    lock_stale_seconds: Optional[int] = None
    stats: CacheStats = field(default_factory=CacheStats)

    def __post_init__(self) -> None:
        self.root = Path(os.path.abspath(self.root))
        self.root.mkdir(parents=True, exist_ok=True)

    # --------------------------- GIT --------------------------- #

    def repository_dir(self, addr: RepositoryAddress) -> Path:
        """
        Deterministic checkout directory for a repository (ref and in-repo path excluded):
        git/<host>[_<port>]/<repo path>, the port only when it is not the protocol default.
        """
        host = addr.host
        if addr.port != addr.proto.default_port:
            host = f"{host}_{addr.port}"
        host_dir = self._safe_join(self.root / GIT_DIR, host, target=addr.repo_url())
        return self._safe_join(host_dir, addr.repo_path, target=addr.repo_url())

    def from_repository(self, addr: RepositoryAddress) -> CheckoutResult:
        """
        Ensure a checkout of `addr` at its ref exists locally.

        Clones on first use, then always fetches the ref from origin and checks
        it out, pulling when git reports the branch is behind.
        """
        logger.debug("Looking up cached entries for Git URL: %s", addr)
        clone_url = addr.repo_url()
        repo_dir = self.repository_dir(addr)
        ref = addr.effective_ref(self.default_ref)

        lock = CheckoutLock(
            self.root / LOCKS_DIR,
            str(repo_dir),
            stale_seconds=self.lock_stale_seconds,
            wait_timeout=self.lock_wait_timeout,
            hold_timeout=self.fetch_timeout,
        )
        with lock:
            cloned = False
            if repo_dir.exists():
                if not repo_dir.is_dir():
                    raise CacheFetchError(clone_url, "use cached checkout of", f"{repo_dir} is not a directory")
                logger.debug("Git repository %s is already cached at %s", clone_url, repo_dir)
            else:
                logger.debug("Git repository %s has not yet been cached", clone_url)
                self._clone(clone_url, repo_dir)
                cloned = True
                lock.refresh()

            self.git.fetch(repo_dir, ref, timeout=self.fetch_timeout)
            self.stats.record("fetches")
            lock.refresh()
            pulled = False
            if self.git.checkout(repo_dir, ref, timeout=self.fetch_timeout):
                lock.refresh()
                self.git.pull(repo_dir, timeout=self.fetch_timeout)
                self.stats.record("pulls")
                pulled = True

        return CheckoutResult(
            path=repo_dir,
            clone_url=clone_url,
            ref=ref,
            cloned=cloned,
            fetched=True,
            pulled=pulled,
        )

    def locate_in_repository(self, addr: RepositoryAddress) -> CheckoutResult:
        """Like from_repository, but `path` points at the in-repo path of `addr`."""
        result = self.from_repository(addr)
        target = result.path
        if addr.in_repo_path:
            target = self._safe_join(result.path, addr.in_repo_path, target=str(addr))
        return CheckoutResult(
            path=target,
            clone_url=result.clone_url,
            ref=result.ref,
            cloned=result.cloned,
            fetched=result.fetched,
            pulled=result.pulled,
        )

    def _clone(self, clone_url: str, repo_dir: Path) -> None:
        # clone next to the final location, so a failed clone never looks like a cached one
        tmp = repo_dir.with_name(f".{repo_dir.name}.{os.getpid()}.clone")
        try:
            try:
                repo_dir.parent.mkdir(parents=True, exist_ok=True)
                if tmp.exists():
                    shutil.rmtree(tmp)
            except OSError as e:
                raise CacheFetchError(clone_url, "clone", f"cannot prepare {repo_dir}: {e}") from e
            self.git.clone(clone_url, tmp, timeout=self.fetch_timeout)
            self.stats.record("clones")
            try:
                tmp.replace(repo_dir)
            except OSError as e:
                raise CacheFetchError(clone_url, "clone", f"cannot move clone into {repo_dir}: {e}") from e
        finally:
            if tmp.exists():
                shutil.rmtree(tmp, ignore_errors=True)

    # --------------------------- WEB --------------------------- #

    def web_path(self, url: str) -> Path:
        """Deterministic cache path for a URL: web/<host>/<url path>."""
        u = urlsplit(url)
        host = u.hostname or ""
        if not host:
            raise CacheFetchError(url, "download", "URL has no host")
        if u.port:
            host = f"{host}_{u.port}"
        rel = unquote(u.path).lstrip("/")
        if not rel or rel.endswith("/"):
            rel += "index"
        host_dir = self._safe_join(self.root / WEB_DIR, host, target=url)
        return self._safe_join(host_dir, rel, target=url)

    def from_web(self, url: str) -> DownloadResult:
        """Download `url` into the cache (always; no freshness check)."""
        dest = self.web_path(url)
        status, size = download_file(url, dest, client=self.http_client, timeout=self.download_timeout)
        self.stats.record("downloads")
        return DownloadResult(path=dest, url=url, status_code=status, size=size)

    # --------------------------- MAINTENANCE --------------------------- #

    def snapshot(self) -> CacheSnapshot:
        """Best-effort summary of the cache tree."""
        size = 0
        web_files = 0
        repositories = 0
        git_root = self.root / GIT_DIR
        web_root = self.root / WEB_DIR
        if git_root.is_dir():
            repositories = sum(1 for p in git_root.rglob(".git") if p.is_dir())
        for p in self.root.rglob("*"):
            try:
                if p.is_file():
                    size += p.stat().st_size
                    if web_root in p.parents:
                        web_files += 1
            except OSError:
                # best-effort, skip unreadable entries
                pass
        return CacheSnapshot(
            path=self.root,
            exists=self.root.exists(),
            repositories=repositories,
            web_files=web_files,
            size_bytes=size,
        )

    # --------------------------- helpers --------------------------- #

    @staticmethod
    def _safe_join(base: Path, rel: str, *, target: str) -> Path:
        """Join a POSIX relative path under `base`, refusing anything that escapes it."""
        norm = posixpath.normpath("/" + rel).lstrip("/")
        parts = [p for p in rel.split("/") if p]
        if ".." in parts or not norm:
            raise CacheFetchError(target, "map to the cache", f"unsafe path '{rel}'")
        return base.joinpath(*norm.split("/"))


__all__ = [
    "ContentCache",
    "CheckoutResult",
    "DownloadResult",
    "CacheStats",
    "CacheSnapshot",
    "DEFAULT_FETCH_TIMEOUT",
    "DEFAULT_DOWNLOAD_TIMEOUT",
]
