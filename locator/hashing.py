"""
Content hashing.

Hashes bytes, and bytes only: no newline normalisation, no decoding.
The resulting lowercase hex SHA-256 digest is the integrity anchor
declared in contract descriptors.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from .errors import LocationNotFoundError
from .types import Sha256Hex

logger = logging.getLogger(__name__)

_CHUNK = 1 << 16


def sha256_bytes(data: bytes) -> Sha256Hex:
    return Sha256Hex(hashlib.sha256(data).hexdigest())


def hash_file(path: Path, *, location: str | None = None) -> Sha256Hex:
    """
    SHA-256 of the file at `path`.

    Raises:
        LocationNotFoundError: If `path` is missing or not a regular file
    """
    loc = location or str(path)
    if not path.is_file():
        reason = "not a regular file" if path.exists() else "no such file"
        raise LocationNotFoundError(loc, str(path), reason)
    h = hashlib.sha256()
    try:
        with path.open("rb") as f:
            for chunk in iter(lambda: f.read(_CHUNK), b""):
                h.update(chunk)
    except OSError as e:
        raise LocationNotFoundError(loc, str(path), str(e)) from e
    digest = Sha256Hex(h.hexdigest())
    logger.debug("Computed hash of %s as %s", path, digest)
    return digest


__all__ = ["sha256_bytes", "hash_file"]
