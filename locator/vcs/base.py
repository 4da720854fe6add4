from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol


class GitTransport(Protocol):
    """
    Operations the content cache needs from Git.

    Every call is bounded by `timeout` seconds (None = unbounded) and raises
    CacheFetchError (FetchTimeoutError on expiry) on failure.
    """
    def clone(self, url: str, dest: Path, *, timeout: Optional[float] = None) -> None:
        """Clone `url` into the (not yet existing) directory `dest`."""
        ...

    def fetch(self, repo_dir: Path, ref: str, *, timeout: Optional[float] = None) -> None:
        """Fetch `ref` from the `origin` remote."""
        ...

    def checkout(self, repo_dir: Path, ref: str, *, timeout: Optional[float] = None) -> bool:
        """
        Check out `ref`. Returns True when the checked-out branch lags
        behind its remote counterpart and needs a pull.
        """
        ...

    def pull(self, repo_dir: Path, *, timeout: Optional[float] = None) -> None:
        """Pull the active branch from `origin`."""
        ...
