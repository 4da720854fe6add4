from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

from ..addressing import DEFAULT_HOST_HINTS, DEFAULT_REF
from ..cache.fs_cache import DEFAULT_DOWNLOAD_TIMEOUT, DEFAULT_FETCH_TIMEOUT


@dataclass
class LocatorConfig:
    """
    Settings of one locator process, as read from <home>/config.yaml.

    `repo_segments` maps a host to the number of path segments that form the
    repository path on that host (e.g. github.com -> 2 for <owner>/<name>).
    `cache_dir` is None when the default location under the home directory applies.
    """
    cache_dir: Optional[str] = None
    default_ref: str = DEFAULT_REF
    fetch_timeout: Optional[float] = DEFAULT_FETCH_TIMEOUT
    download_timeout: Optional[float] = DEFAULT_DOWNLOAD_TIMEOUT
    lock_wait_timeout: Optional[float] = None
    lock_stale_seconds: Optional[int] = None
    repo_segments: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_HOST_HINTS))
