from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Optional

import httpx

from ..errors import CacheFetchError, FetchTimeoutError

logger = logging.getLogger(__name__)


def download_file(
    url: str,
    dest: Path,
    *,
    client: Optional[httpx.Client] = None,
    timeout: Optional[float] = None,
) -> tuple[int, int]:
    """
    Download `url` into `dest`, replacing it atomically.

    Args:
        url: HTTP(S) URL to fetch
        dest: Destination file (parent directories are created)
        client: Shared client; a short-lived one is created when omitted
        timeout: Overall per-request timeout in seconds (None = no timeout)

    Returns:
        (status code, number of bytes written)

    Raises:
        CacheFetchError: On HTTP status >= 400 or any transport failure
        FetchTimeoutError: When the request does not finish in time
    """
    if client is None:
        with httpx.Client(follow_redirects=True) as own_client:
            return download_file(url, dest, client=own_client, timeout=timeout)

    logger.info("Fetching URL: %s", url)
    tmp = dest.with_name(f".{dest.name}.{os.getpid()}-{threading.get_ident()}.tmp")
    size = 0
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with client.stream("GET", url, timeout=httpx.Timeout(timeout)) as resp:
            if resp.status_code >= 400:
                raise CacheFetchError(url, "download", f"request failed with code {resp.status_code}")
            with tmp.open("wb") as f:
                for chunk in resp.iter_bytes():
                    f.write(chunk)
                    size += len(chunk)
            status = resp.status_code
        logger.info("Writing response body to %s", dest)
        tmp.replace(dest)
    except httpx.TimeoutException as e:
        raise FetchTimeoutError(url, "download", float(timeout or 0)) from e
    except httpx.HTTPError as e:
        raise CacheFetchError(url, "download", str(e)) from e
    except OSError as e:
        raise CacheFetchError(url, "download", f"cannot write {dest}: {e}") from e
    finally:
        if tmp.exists():
            tmp.unlink()
    return status, size


__all__ = ["download_file"]
