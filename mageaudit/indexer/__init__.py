"""mageaudit indexer package.

File discovery and classification: walks the scan roots once and hands the
categorized, lazily-read files to the symbol index and the rule processors.
"""

from .core import ClassifiedFiles, FileCategory, FileWalker, SkipRecord, SourceFile, categorize, classify
from .exceptions import (
    MageAuditError,
    MalformedMarkupError,
    ScanPathError,
    SubtypesNotFoundError,
    UnreadableFileError,
)

__all__ = [
    "ClassifiedFiles",
    "FileCategory",
    "FileWalker",
    "SkipRecord",
    "SourceFile",
    "categorize",
    "classify",
    "MageAuditError",
    "MalformedMarkupError",
    "ScanPathError",
    "SubtypesNotFoundError",
    "UnreadableFileError",
]
