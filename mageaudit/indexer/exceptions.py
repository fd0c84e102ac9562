"""Custom exceptions for the mageaudit engine.

Contains exception classes for the failure modes that callers must be able
to tell apart rather than receive as generic errors.
"""

from pathlib import Path


class MageAuditError(Exception):
    """Base class for engine errors.

    Attributes:
        message: Human-readable error description
        details: Dict with extra context for debugging
    """

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ScanPathError(MageAuditError):
    """Raised before scanning starts when the root path is missing or unreadable."""


class UnreadableFileError(MageAuditError):
    """Raised when a classified file cannot be read."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Cannot read {path}: {reason}", {"path": str(path)})
        self.path = path
        self.reason = reason


class MalformedMarkupError(MageAuditError):
    """Raised when an XML configuration file cannot be parsed."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Malformed XML in {path}: {reason}", {"path": str(path)})
        self.path = path
        self.reason = reason


class SubtypesNotFoundError(MageAuditError, LookupError):
    """Raised by a hierarchy lookup for a type never seen in the scan.

    A type that was seen (declared or extended) but has no subtypes yields an
    empty frozenset instead, so callers can tell the two apart.
    """

    def __init__(self, type_name: str):
        super().__init__(f"No hierarchy entry for {type_name}", {"type": type_name})
        self.type_name = type_name
