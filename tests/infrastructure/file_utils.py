"""
Helpers for creating files in tests.
"""

from __future__ import annotations

import hashlib
from pathlib import Path


def write(p: Path, text: str) -> Path:
    """
    Write text to a file, creating parent directories as needed.

    Args:
        p: File path
        text: Content to write

    Returns:
        Path of the written file
    """
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    return p


def write_bytes(p: Path, data: bytes) -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(data)
    return p


def sha256_text(text: str) -> str:
    """SHA-256 of the UTF-8 encoding of `text`, as stored by write()."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def sha256_file(p: Path) -> str:
    return hashlib.sha256(p.read_bytes()).hexdigest()
