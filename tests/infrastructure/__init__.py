"""
Shared test infrastructure.

Modules:
- file_utils: creating files and computing their hashes
- git_utils: in-memory and local-repository Git transports
- cli_utils: running the CLI in a subprocess
"""

from .file_utils import write, write_bytes, sha256_text, sha256_file
from .git_utils import FakeGit, LocalGit, init_repo, commit_files
from .cli_utils import run_cli, jload

__all__ = [
    "write",
    "write_bytes",
    "sha256_text",
    "sha256_file",
    "FakeGit",
    "LocalGit",
    "init_repo",
    "commit_files",
    "run_cli",
    "jload",
]
