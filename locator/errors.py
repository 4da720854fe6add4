"""
Base exception for user-facing errors.

All expected errors that should be displayed to the user
as clean messages (without stack traces) must inherit from LocatorUserError.

Programming errors and bugs should NOT inherit from LocatorUserError;
they will propagate with full tracebacks.
"""

from __future__ import annotations

from typing import Optional


class LocatorUserError(Exception):
    """
    Base class for all user-facing errors in contract-locator.

    These errors indicate problems that the user can fix:
    malformed locations, unreachable remotes, tampered files, etc.
    """
    pass


class ParseError(LocatorUserError):
    """Location string matches no known grammar for its classified scheme."""
    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Cannot parse location '{location}': {reason}")


class NotRelativeError(LocatorUserError):
    """Relative resolution was requested for a location that is not relative."""
    def __init__(self, location: str):
        self.location = location
        super().__init__(f"Supplied location is not relative: {location}")


class PathEscapesRepositoryError(LocatorUserError):
    """A relative path climbs above the root of the repository it is resolved in."""
    def __init__(self, base: str, relative: str):
        self.base = base
        self.relative = relative
        super().__init__(
            f"Relative path '{relative}' escapes the repository of '{base}'"
        )


class HashMismatchError(LocatorUserError):
    """Content hash disagrees with the declared hash and strict checking is on."""
    def __init__(self, location: str, expected: str, actual: str):
        self.location = location
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Hash mismatch on file {location}: expected {expected or '<none>'}, got {actual}"
        )


class CacheFetchError(LocatorUserError):
    """
    Clone/fetch/checkout/download failed.

    The underlying exception (subprocess or HTTP failure) is available via __cause__.
    """
    def __init__(self, target: str, operation: str, detail: str = "", *, output: Optional[str] = None):
        self.target = target
        self.operation = operation
        self.detail = detail
        self.output = output
        msg = f"Failed to {operation} {target}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class FetchTimeoutError(CacheFetchError):
    """An external fetch operation did not finish within its timeout."""
    def __init__(self, target: str, operation: str, timeout: float):
        self.timeout = timeout
        super().__init__(target, operation, f"timed out after {timeout:g}s")


class CacheLockError(CacheFetchError):
    """The per-checkout lock could not be obtained."""
    pass


class UnsupportedFormatError(LocatorUserError):
    """File extension is not recognized where a format-specific parse is required."""
    def __init__(self, path: str, detail: str = ""):
        self.path = path
        msg = f"Unsupported file format: {path}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class LocationNotFoundError(LocatorUserError):
    """A resolved location does not point at a readable regular file."""
    def __init__(self, location: str, local_path: str, reason: str = "no such file"):
        self.location = location
        self.local_path = local_path
        super().__init__(f"Cannot read {location} (at {local_path}): {reason}")


class ContractError(LocatorUserError):
    """Contract descriptor is malformed."""
    def __init__(self, location: str, detail: str):
        self.location = location
        super().__init__(f"Invalid contract descriptor {location}: {detail}")


__all__ = [
    "LocatorUserError",
    "ParseError",
    "NotRelativeError",
    "PathEscapesRepositoryError",
    "HashMismatchError",
    "CacheFetchError",
    "FetchTimeoutError",
    "CacheLockError",
    "UnsupportedFormatError",
    "LocationNotFoundError",
    "ContractError",
]
