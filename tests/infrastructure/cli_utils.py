"""
Utilities for running the CLI in tests.
"""

import json
import os
import subprocess
import sys
from pathlib import Path


def run_cli(home: Path, *args: str) -> subprocess.CompletedProcess:
    """
    Run `python -m locator` with an isolated home directory.

    Args:
        home: Home directory for the run (config.yaml, default cache)
        *args: Command line arguments

    Returns:
        CompletedProcess with execution results
    """
    env = os.environ.copy()
    env["LOCATOR_HOME"] = str(home)
    env.pop("LOCATOR_CACHE_DIR", None)
    env.pop("LOCATOR_LOG_LEVEL", None)
    return subprocess.run(
        [sys.executable, "-m", "locator", *args],
        cwd=home, env=env, capture_output=True, text=True, encoding="utf-8"
    )


def jload(s: str):
    return json.loads(s)
