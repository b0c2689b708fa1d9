"""Error taxonomy for geiger-core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class GeigerError(Exception):
    """Base class for errors that terminate a geiger invocation."""


class GraphResolutionError(GeigerError):
    """Raised when the dependency graph cannot be built from metadata."""


class BuildResolutionError(GeigerError):
    """Raised when cargo cannot produce a compile plan for the selection."""


class SerializationError(GeigerError):
    """Raised when a report cannot be serialized."""


class ParseError(GeigerError):
    """A single source file that could not be read or parsed.

    Scans record these and carry on; they are never raised out of a scan.
    """

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


__all__ = [
    "BuildResolutionError",
    "GeigerError",
    "GraphResolutionError",
    "ParseError",
    "SerializationError",
]
