from __future__ import annotations

import hashlib
import json
import logging
import math
import os
import shutil
import threading
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

from ..errors import CacheLockError

logger = logging.getLogger(__name__)

DEFAULT_STALE_SECONDS = 600
DEFAULT_WAIT_TIMEOUT = 300.0
# room for a single git step: `pull` runs rev-parse and pull, each with its own timeout
_STEPS_PER_REFRESH = 2
_STALE_MARGIN = 60


def _now_utc() -> str:
    return datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z')


class CheckoutLock:
    """
    Lock for one checkout directory of the content cache, held for the whole
    clone/fetch/checkout sequence.

    • Inside a process: one threading.Lock per key.
    • Across processes: a lock directory under `<cache>/locks/`, created atomically (os.mkdir).
    • The lock name is unique per key (sha1 of the canonical checkout path).
    • Every holder writes a unique owner token; only the owner removes or refreshes the lock.
    • The holder calls refresh() between steps; a lock not refreshed for
      `stale_seconds` is considered abandoned and taken over.
    • Waits with exponential backoff up to `wait_timeout`, then raises CacheLockError.

    Without an explicit or env-provided `stale_seconds`, the threshold is at
    least twice `hold_timeout` (the per-step timeout of the holder) plus a margin.
    """

    _thread_locks: Dict[str, threading.Lock] = {}
    _guard = threading.Lock()

    def __init__(
        self,
        locks_dir: Path,
        key: str,
        *,
        stale_seconds: int | None = None,
        wait_timeout: float | None = None,
        hold_timeout: float | None = None,
    ) -> None:
        self.key = key
        if stale_seconds is not None:
            self.stale_seconds = int(stale_seconds)
        elif os.environ.get("LOCATOR_LOCK_STALE_SEC"):
            self.stale_seconds = int(os.environ["LOCATOR_LOCK_STALE_SEC"])
        else:
            floor = math.ceil(_STEPS_PER_REFRESH * hold_timeout) + _STALE_MARGIN if hold_timeout else 0
            self.stale_seconds = max(DEFAULT_STALE_SECONDS, floor)
        self.wait_timeout = float(
            wait_timeout if wait_timeout is not None
            else os.environ.get("LOCATOR_LOCK_WAIT_TIMEOUT", DEFAULT_WAIT_TIMEOUT)
        )
        h = hashlib.sha1(key.encode("utf-8")).hexdigest()
        self.base = locks_dir
        self.lock_dir = self.base / f"checkout-{h}"
        self.token = uuid.uuid4().hex
        self.acquired = False
        with CheckoutLock._guard:
            self._thread_lock = CheckoutLock._thread_locks.setdefault(h, threading.Lock())

    def acquire(self) -> None:
        start = time.monotonic()
        if not self._thread_lock.acquire(timeout=self.wait_timeout):
            raise CacheLockError(self.key, "lock", f"timed out after {self.wait_timeout:g}s waiting for another thread")
        try:
            self._acquire_dir(start)
        except BaseException:
            self._thread_lock.release()
            raise
        self.acquired = True

    def _acquire_dir(self, start: float) -> None:
        try:
            self.base.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheLockError(self.key, "lock", f"cannot create lock directory {self.base}: {e}") from e

        delay = 0.05
        max_delay = 1.0
        while True:
            try:
                os.mkdir(self.lock_dir)
            except FileExistsError:
                pass
            except OSError as e:
                raise CacheLockError(self.key, "lock", f"cannot create {self.lock_dir}: {e}") from e
            else:
                try:
                    self._write_info({
                        "pid": os.getpid(),
                        "key": self.key,
                        "token": self.token,
                        "started_at": _now_utc(),
                    })
                except OSError as e:
                    shutil.rmtree(self.lock_dir, ignore_errors=True)
                    raise CacheLockError(self.key, "lock", f"cannot write owner of {self.lock_dir}: {e}") from e
                return

            if self._is_stale() and self._take_over():
                continue

            if (time.monotonic() - start) >= self.wait_timeout:
                info = self._read_info()
                raise CacheLockError(
                    self.key,
                    "lock",
                    f"timed out after {self.wait_timeout:g}s; lock owner PID {info.get('pid', 'unknown')}, "
                    f"started at {info.get('started_at', 'unknown')}. "
                    f"If the process is stuck, manually remove: {self.lock_dir}",
                )
            time.sleep(delay)
            delay = min(delay * 1.5, max_delay)

    def _take_over(self) -> bool:
        """Moves a stale lock aside; only one contender's rename succeeds."""
        info = self._read_info()
        graveyard = self.lock_dir.with_name(f"{self.lock_dir.name}.stale-{self.token}")
        try:
            os.rename(self.lock_dir, graveyard)
        except OSError:
            # someone else took it over or released it first
            return False
        logger.warning(
            "Taking over stale cache lock %s (previous owner PID %s)",
            self.lock_dir, info.get("pid", "unknown"),
        )
        shutil.rmtree(graveyard, ignore_errors=True)
        return True

    def owns(self) -> bool:
        return self.acquired and self._read_info().get("token") == self.token

    def refresh(self) -> None:
        """
        Marks the lock as alive before the next step of a long sequence.

        Raises CacheLockError when the lock was taken over meanwhile: the
        checkout may be in use by another process and must not be touched.
        """
        if not self.owns():
            info = self._read_info()
            raise CacheLockError(
                self.key,
                "lock",
                f"lock {self.lock_dir} was taken over by PID {info.get('pid', 'unknown')}",
            )
        try:
            os.utime(self.lock_dir)
        except OSError as e:
            raise CacheLockError(self.key, "lock", f"cannot refresh {self.lock_dir}: {e}") from e

    def release(self) -> None:
        if not self.acquired:
            return
        try:
            if self.owns():
                graveyard = self.lock_dir.with_name(f"{self.lock_dir.name}.released-{self.token}")
                try:
                    os.rename(self.lock_dir, graveyard)
                except OSError:
                    graveyard = self.lock_dir
                shutil.rmtree(graveyard, ignore_errors=True)
            else:
                logger.warning("Cache lock %s was taken over; leaving it to its new owner", self.lock_dir)
        finally:
            self.acquired = False
            self._thread_lock.release()

    def __enter__(self) -> "CheckoutLock":
        self.acquire()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.release()

    def _is_stale(self) -> bool:
        try:
            age = time.time() - self.lock_dir.stat().st_mtime
        except FileNotFoundError:
            # released meanwhile; next mkdir attempt decides
            return False
        return age > self.stale_seconds

    def _read_info(self) -> Dict[str, Any]:
        """Reads lock.json metadata (best-effort)."""
        try:
            return json.loads((self.lock_dir / "lock.json").read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}

    def _write_info(self, payload: Dict[str, Any]) -> None:
        (self.lock_dir / "lock.json").write_text(
            json.dumps(payload, ensure_ascii=False), encoding="utf-8"
        )


__all__ = ["CheckoutLock", "DEFAULT_STALE_SECONDS", "DEFAULT_WAIT_TIMEOUT"]
