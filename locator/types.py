from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import NewType

from .addressing import AddressKind, classify

# ---- Aliases for clarity ----
Sha256Hex = NewType("Sha256Hex", str)  # lowercase hex SHA-256 digest of a file's bytes


def is_relative_location(location: str) -> bool:
    """
    True if `location` must be resolved against another file reference:
    it starts with "." or it is a local, non-absolute path.
    """
    if location.startswith("."):
        return True
    return classify(location) is AddressKind.LOCAL and not os.path.isabs(location)


@dataclass(frozen=True)
class RelativeRef:
    """
    An unresolved reference as declared in a contract descriptor:
    where the file lives and which hash its content must have.
    """
    location: str
    hash: str = ""

    @property
    def is_relative(self) -> bool:
        return is_relative_location(self.location)


@dataclass(frozen=True)
class FileReference:
    """
    Resolved, hash-verified, locally readable handle to a file.

    `location` is the user-facing address (possibly a repository pseudo-URL),
    `local_path` is where the byte-identical content resides.
    `hash` is the SHA-256 of the bytes at `local_path` at resolution time;
    it is not re-verified later. The cache owns the file, the reference only
    points at it.
    """
    location: str
    hash: Sha256Hex
    local_path: Path

    @property
    def kind(self) -> AddressKind:
        return classify(self.location)

    @property
    def is_relative(self) -> bool:
        return is_relative_location(self.location)

    @property
    def filename(self) -> str:
        return self.local_path.name

    @property
    def directory(self) -> Path:
        return self.local_path.parent

    @property
    def suffix(self) -> str:
        return self.local_path.suffix

    def read_bytes(self) -> bytes:
        return self.local_path.read_bytes()

    def read_text(self, encoding: str = "utf-8") -> str:
        return self.local_path.read_text(encoding=encoding)

    def copy_to(self, dest: Path) -> Path:
        """Copy the local content to `dest` (full destination file name)."""
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.local_path, dest)
        return dest

    def local_rel_path(self, base: Path) -> str:
        """Path of the local copy relative to `base` (POSIX separators)."""
        rel = os.path.relpath(os.path.abspath(self.local_path), os.path.abspath(base))
        return Path(rel).as_posix()

    def __str__(self) -> str:
        return f"FileReference(location={self.location!r}, hash={self.hash!r})"


__all__ = ["Sha256Hex", "RelativeRef", "FileReference", "is_relative_location"]
