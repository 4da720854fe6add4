"""
Git integration package for contract-locator.

Provides:
- GitTransport: Protocol for the Git operations the content cache relies on
- GitCli: implementation on top of the `git` executable
"""

from .base import GitTransport
from .git import GitCli

__all__ = [
    "GitTransport",
    "GitCli",
]
