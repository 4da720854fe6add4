from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from ..errors import CacheFetchError, FetchTimeoutError

logger = logging.getLogger(__name__)

# Printed by `git checkout` when the local branch is behind (or has diverged from) origin.
_PULL_HINT = 'use "git pull"'


def _git(
    args: list[str],
    *,
    cwd: Optional[Path],
    target: str,
    operation: str,
    timeout: Optional[float],
) -> str:
    """
    Run a git command and return its combined output.

    Unlike a best-effort helper, every failure is reported: the cache must
    never silently serve a checkout it could not update.
    """
    cmd = ["git", *args] if cwd is None else ["git", "-C", str(cwd), *args]
    env = os.environ.copy()
    # never block on a credential prompt
    env.setdefault("GIT_TERMINAL_PROMPT", "0")
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            env=env,
        )
    except subprocess.TimeoutExpired as e:
        raise FetchTimeoutError(target, operation, float(timeout or 0)) from e
    except OSError as e:
        raise CacheFetchError(target, operation, f"cannot run git: {e}") from e

    output = (proc.stdout or "") + (proc.stderr or "")
    logger.debug("git %s output:\n%s", args[0], output)
    if proc.returncode != 0:
        detail = output.strip().splitlines()[-1] if output.strip() else f"exit code {proc.returncode}"
        raise CacheFetchError(target, operation, detail, output=output)
    return output


class GitCli:
    """
    GitTransport backed by the `git` executable on PATH.

      - clone:    git clone <url> <dest>
      - fetch:    git fetch origin <ref>
      - checkout: git checkout <ref>
      - pull:     git pull --ff-only origin <active branch>
    """

    def clone(self, url: str, dest: Path, *, timeout: Optional[float] = None) -> None:
        logger.info("Cloning %s to %s", url, dest)
        _git(["clone", url, str(dest)], cwd=None, target=url, operation="clone", timeout=timeout)

    def fetch(self, repo_dir: Path, ref: str, *, timeout: Optional[float] = None) -> None:
        logger.info("Fetching ref \"%s\" into %s", ref, repo_dir)
        _git(["fetch", "origin", ref], cwd=repo_dir, target=str(repo_dir), operation=f"fetch \"{ref}\" for", timeout=timeout)

    def checkout(self, repo_dir: Path, ref: str, *, timeout: Optional[float] = None) -> bool:
        output = _git(["checkout", ref], cwd=repo_dir, target=str(repo_dir), operation=f"checkout \"{ref}\" in", timeout=timeout)
        # A ref may also be a commit hash or a tag, so only pull when git asks for it.
        return _PULL_HINT in output

    def active_branch(self, repo_dir: Path, *, timeout: Optional[float] = None) -> str:
        out = _git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_dir, target=str(repo_dir), operation="detect active branch in", timeout=timeout)
        branch = out.strip()
        if not branch or branch == "HEAD":
            raise CacheFetchError(str(repo_dir), "detect active branch in", "no active branch")
        return branch

    def pull(self, repo_dir: Path, *, timeout: Optional[float] = None) -> None:
        branch = self.active_branch(repo_dir, timeout=timeout)
        logger.debug("Pulling branch \"%s\" from origin into %s", branch, repo_dir)
        _git(["pull", "--ff-only", "origin", branch], cwd=repo_dir, target=str(repo_dir), operation=f"pull \"{branch}\" into", timeout=timeout)


__all__ = ["GitCli"]
