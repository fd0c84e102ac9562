"""File discovery and classification.

Walks one or more root paths and buckets every recognized file into one of
four categories. Files are represented by SourceFile objects whose text is
read lazily and cached for the rest of the scan.
"""

import fnmatch
import os
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from mageaudit.config_runtime import load_runtime_config
from mageaudit.utils.logging import logger

from .config import (
    DEPENDENCY_CONFIG_FILENAME,
    MARKUP_EXTENSIONS,
    RECOGNIZED_EXTENSIONS,
    SOURCE_EXTENSIONS,
    TEMPLATE_EXTENSIONS,
)
from .exceptions import ScanPathError, UnreadableFileError


class FileCategory(Enum):
    """Buckets produced by classification."""

    SOURCE = "source"
    TEMPLATE = "template"
    CONFIG_XML = "config-xml"
    DEPENDENCY_XML = "dependency-xml"


@dataclass(frozen=True)
class SkipRecord:
    """One unit of work that was skipped without aborting the scan."""

    path: str | None
    reason: str
    rule_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "reason": self.reason, "rule": self.rule_id}


def categorize(path: Path, extensions: frozenset[str] = RECOGNIZED_EXTENSIONS) -> FileCategory | None:
    """Return the category for a path, or None when its extension is not handled."""
    ext = path.suffix.lower().lstrip(".")
    if ext not in extensions:
        return None
    if ext in TEMPLATE_EXTENSIONS:
        return FileCategory.TEMPLATE
    if ext in MARKUP_EXTENSIONS:
        if path.name.lower() == DEPENDENCY_CONFIG_FILENAME:
            return FileCategory.DEPENDENCY_XML
        return FileCategory.CONFIG_XML
    if ext in SOURCE_EXTENSIONS:
        return FileCategory.SOURCE
    return None


@dataclass(eq=False)
class SourceFile:
    """A classified file. Text is loaded on first access and then cached."""

    path: Path
    category: FileCategory
    relative_path: str = ""

    _text: str | None = field(default=None, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @classmethod
    def in_memory(cls, path: str | Path, text: str, category: FileCategory | None = None) -> "SourceFile":
        """Build a SourceFile whose text is already known (no disk access)."""
        path = Path(path)
        category = category or categorize(path)
        if category is None:
            raise ValueError(f"Cannot infer a category for {path}")
        source = cls(path=path, category=category, relative_path=path.as_posix())
        source._text = text
        return source

    @property
    def text(self) -> str:
        """File contents, decoded as UTF-8 with replacement of invalid bytes.

        Raises:
            UnreadableFileError: the file vanished or cannot be opened
        """
        if self._text is None:
            with self._lock:
                if self._text is None:
                    try:
                        self._text = self.path.read_text(encoding="utf-8", errors="replace")
                    except OSError as e:
                        raise UnreadableFileError(self.path, e.strerror or str(e)) from e
        return self._text

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def posix_path(self) -> str:
        return self.path.as_posix()

    def real_path(self) -> str:
        return os.path.realpath(self.path)


@dataclass(frozen=True)
class ClassifiedFiles:
    """Immutable result of classification, shared read-only by all processors."""

    buckets: Mapping[FileCategory, tuple[SourceFile, ...]]
    skipped: tuple[SkipRecord, ...] = ()

    @classmethod
    def from_files(cls, files: Iterable[SourceFile], skipped: Iterable[SkipRecord] = ()) -> "ClassifiedFiles":
        grouped: dict[FileCategory, list[SourceFile]] = {category: [] for category in FileCategory}
        for source in files:
            grouped[source.category].append(source)
        return cls(
            buckets=MappingProxyType({category: tuple(items) for category, items in grouped.items()}),
            skipped=tuple(skipped),
        )

    def __getitem__(self, category: FileCategory) -> tuple[SourceFile, ...]:
        return self.buckets.get(category, ())

    def __iter__(self) -> Iterator[SourceFile]:
        for category in FileCategory:
            yield from self[category]

    def __len__(self) -> int:
        return sum(len(items) for items in self.buckets.values())

    def has(self, category: FileCategory) -> bool:
        return bool(self[category])

    def counts(self) -> dict[str, int]:
        return {category.value: len(self[category]) for category in FileCategory}


class FileWalker:
    """Handles directory walking with exclusion filtering and symlink loop protection."""

    def __init__(self, root_path: Path, config: dict[str, Any],
                 exclude_patterns: list[str] | None = None,
                 exclude_extensions: list[str] | None = None):
        """Initialize the file walker.

        Args:
            root_path: Root directory (or single file) to walk
            config: Runtime configuration
            exclude_patterns: Glob-like patterns matched against relative paths and basenames
            exclude_extensions: Extensions to drop, with or without a leading dot
        """
        self.root_path = Path(root_path)
        self.config = config
        self.follow_symlinks = config["scan"]["follow_symlinks"]
        self.max_file_size = config["limits"]["max_file_size"]
        self.skip_dirs = set(config["scan"]["excluded_dirs"])
        self.excluded_files = set(config["scan"]["excluded_files"])

        dropped = {ext.lower().lstrip(".") for ext in exclude_extensions or [] if ext.strip()}
        self.extensions = RECOGNIZED_EXTENSIONS - dropped

        # Trailing "/" or "/**" marks a directory-only pattern
        self.dir_patterns: list[str] = []
        self.file_patterns: list[str] = []
        for pattern in exclude_patterns or []:
            pattern = pattern.strip()
            if not pattern:
                continue
            if pattern.endswith("/**"):
                self.dir_patterns.append(pattern[:-3])
            elif pattern.endswith("/"):
                self.dir_patterns.append(pattern[:-1])
            else:
                self.dir_patterns.append(pattern)
                self.file_patterns.append(pattern)

        self.skipped: list[SkipRecord] = []
        self.stats = {
            "total_files": 0,
            "classified_files": 0,
            "skipped_dirs": 0,
            "unreadable_files": 0,
            "large_files": 0,
        }
        self._visited_dirs: set[str] = set()

    def _matches(self, name: str, relative_path: str, absolute: str, patterns: list[str]) -> bool:
        for pattern in patterns:
            if (fnmatch.fnmatch(name, pattern)
                    or fnmatch.fnmatch(relative_path, pattern)
                    or fnmatch.fnmatch(absolute, pattern)):
                return True
        return False

    def _relative(self, path: Path) -> str:
        if self.root_path.is_dir():
            try:
                return path.relative_to(self.root_path).as_posix()
            except ValueError:
                return path.as_posix()
        return path.name

    def _skip(self, path: Path, reason: str) -> None:
        logger.warning(f"Skipping {path}: {reason}")
        self.skipped.append(SkipRecord(path=str(path), reason=reason))

    def process_file(self, file: Path) -> SourceFile | None:
        """Classify a single file.

        Returns:
            SourceFile or None if the file is excluded, unrecognized or unreadable
        """
        self.stats["total_files"] += 1
        if file.name in self.excluded_files:
            return None

        category = categorize(file, self.extensions)
        if category is None:
            return None

        relative_path = self._relative(file)
        if self.file_patterns and self._matches(file.name, relative_path, file.as_posix(), self.file_patterns):
            return None

        try:
            if not self.follow_symlinks and file.is_symlink():
                return None
            if not file.is_file():
                self.stats["unreadable_files"] += 1
                self._skip(file, "not a regular file (broken link or special file)")
                return None
            if not os.access(file, os.R_OK):
                self.stats["unreadable_files"] += 1
                self._skip(file, "permission denied")
                return None
            if file.stat().st_size > self.max_file_size:
                self.stats["large_files"] += 1
                self._skip(file, f"larger than {self.max_file_size} bytes")
                return None
        except OSError as e:
            self.stats["unreadable_files"] += 1
            self._skip(file, e.strerror or str(e))
            return None

        self.stats["classified_files"] += 1
        return SourceFile(path=file, category=category, relative_path=relative_path)

    def walk(self) -> list[SourceFile]:
        """Walk the root and collect classified files in deterministic order."""
        if self.root_path.is_file():
            source = self.process_file(self.root_path)
            return [source] if source else []

        files: list[SourceFile] = []
        for dirpath, dirnames, filenames in os.walk(self.root_path, followlinks=self.follow_symlinks):
            real = os.path.realpath(dirpath)
            if real in self._visited_dirs:
                logger.debug(f"Symlink loop or alias detected at {dirpath}, not descending")
                dirnames.clear()
                continue
            self._visited_dirs.add(real)

            kept = []
            for dirname in sorted(dirnames):
                full = Path(dirpath) / dirname
                if dirname in self.skip_dirs or self._matches(
                    dirname, self._relative(full), full.as_posix(), self.dir_patterns
                ):
                    self.stats["skipped_dirs"] += 1
                    continue
                kept.append(dirname)
            dirnames[:] = kept

            for filename in sorted(filenames):
                source = self.process_file(Path(dirpath) / filename)
                if source:
                    files.append(source)

        return files


def classify(paths: str | Path | Iterable[str | Path],
             exclude_patterns: list[str] | None = None,
             exclude_extensions: list[str] | None = None,
             config: dict[str, Any] | None = None) -> ClassifiedFiles:
    """Walk a root path (or explicit path list) and bucket files by category.

    Args:
        paths: A root directory, a single file, or a list of either
        exclude_patterns: Glob-like path patterns to exclude
        exclude_extensions: Extensions to exclude
        config: Runtime configuration (loaded from the first root when omitted)

    Returns:
        ClassifiedFiles with per-category tuples and skip records

    Raises:
        ScanPathError: a root path does not exist or is not readable
    """
    if isinstance(paths, (str, Path)):
        roots = [Path(paths)]
    else:
        roots = [Path(p) for p in paths]
    if not roots:
        raise ScanPathError("No path given to scan")

    for root in roots:
        if not root.exists():
            raise ScanPathError(f"Path '{root}' is not a valid directory or file.", {"path": str(root)})
        if not os.access(root, os.R_OK):
            raise ScanPathError(f"Path '{root}' is not readable.", {"path": str(root)})

    if config is None:
        config = load_runtime_config(roots[0] if roots[0].is_dir() else roots[0].parent)

    files: list[SourceFile] = []
    skipped: list[SkipRecord] = []
    for root in roots:
        walker = FileWalker(root.absolute(), config, exclude_patterns, exclude_extensions)
        files.extend(walker.walk())
        skipped.extend(walker.skipped)
        logger.debug(f"Classified {walker.stats['classified_files']} of {walker.stats['total_files']} files under {root}")

    return ClassifiedFiles.from_files(files, skipped)
