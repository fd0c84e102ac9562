"""Type declarations and the supertype -> subtypes index."""

import re
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from mageaudit.indexer.exceptions import SubtypesNotFoundError, UnreadableFileError
from mageaudit.utils.logging import logger
from mageaudit.utils.php_text import line_number_at

from .imports import ImportTable, resolve_imports

DECLARATION_RE = re.compile(
    r"^[ \t]*(?:(?:abstract|final|readonly)\s+)*(class|interface|trait|enum)\s+(\w+)"
    r"(?:\s*:\s*\w+)?"
    r"(?:\s+extends\s+([\w\\]+(?:\s*,\s*[\w\\]+)*))?"
    r"(?:\s+implements\s+([\w\\]+(?:\s*,\s*[\w\\]+)*))?"
    r"\s*\{",
    re.MULTILINE,
)


@dataclass(frozen=True)
class TypeDeclaration:
    """The first class-like declaration of a file, fully qualified."""

    name: str
    kind: str
    path: str
    line: int
    parent: str | None = None
    interfaces: tuple[str, ...] = ()

    @property
    def short_name(self) -> str:
        return self.name.rsplit("\\", 1)[-1]

    @property
    def supertypes(self) -> tuple[str, ...]:
        if self.parent:
            return (self.parent,) + self.interfaces
        return self.interfaces


def _names(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [part.strip() for part in raw.split(",") if part.strip()]


def extract_declaration(text: str, imports: ImportTable, path: str = "") -> TypeDeclaration | None:
    """Parse the first class/interface/trait/enum declaration of a file."""
    match = DECLARATION_RE.search(text)
    if not match:
        return None
    kind, short_name = match.group(1), match.group(2)
    name = f"{imports.namespace}\\{short_name}" if imports.namespace else short_name

    extends = [imports.qualify(n) for n in _names(match.group(3))]
    implements = [imports.qualify(n) for n in _names(match.group(4))]
    if kind == "interface":
        # Interfaces may extend several interfaces and have no class parent
        parent, interfaces = None, tuple(extends + implements)
    else:
        parent = extends[0] if extends else None
        interfaces = tuple(implements)

    return TypeDeclaration(
        name=name,
        kind=kind,
        path=path,
        line=line_number_at(text, match.start(1)),
        parent=parent,
        interfaces=interfaces,
    )


@dataclass
class BuildContext:
    """Per-scan state used while the hierarchy is being built.

    Owned by one scan; a new scan gets a new context. Safe to feed from
    several worker threads.
    """

    processed_paths: set[str] = field(default_factory=set)
    declarations: list[TypeDeclaration] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def claim(self, real_path: str) -> bool:
        """Mark a real path as processed; False if it already was."""
        with self._lock:
            if real_path in self.processed_paths:
                return False
            self.processed_paths.add(real_path)
            return True

    def add_declaration(self, declaration: TypeDeclaration) -> None:
        with self._lock:
            self.declarations.append(declaration)


@dataclass(frozen=True)
class TypeHierarchyIndex:
    """Read-only mapping of supertype name to the subtypes declared in the scan.

    A key exists for every type seen in an ``extends``/``implements`` clause,
    whether or not the supertype itself is declared in the scan.
    """

    edges: Mapping[str, frozenset[str]] = field(default_factory=lambda: MappingProxyType({}))

    def get_subtypes(self, type_name: str) -> frozenset[str]:
        """Direct subtypes of ``type_name``.

        Raises:
            SubtypesNotFoundError: the type was never seen as a supertype
        """
        type_name = type_name.lstrip("\\")
        if type_name not in self.edges:
            raise SubtypesNotFoundError(type_name)
        return self.edges[type_name]

    def __contains__(self, type_name: str) -> bool:
        return type_name.lstrip("\\") in self.edges

    def edge_set(self) -> frozenset[tuple[str, str]]:
        return frozenset((parent, child) for parent, children in self.edges.items() for child in children)


def build_hierarchy_from_declarations(declarations: Iterable[TypeDeclaration]) -> TypeHierarchyIndex:
    """Record every declared child under each of its supertypes."""
    edges: dict[str, set[str]] = {}
    for declaration in declarations:
        for supertype in declaration.supertypes:
            edges.setdefault(supertype, set()).add(declaration.name)
    return TypeHierarchyIndex(
        edges=MappingProxyType({parent: frozenset(children) for parent, children in edges.items()})
    )


def build_hierarchy(source_files: Iterable, context: BuildContext | None = None) -> TypeHierarchyIndex:
    """Build the hierarchy straight from source files.

    Files whose real path was already processed under ``context`` are
    skipped; unreadable files are logged and skipped.
    """
    context = context or BuildContext()
    for source in source_files:
        if not context.claim(source.real_path()):
            continue
        try:
            text = source.text
        except UnreadableFileError as e:
            logger.warning(f"Skipping {source.path} in hierarchy build: {e.reason}")
            continue
        declaration = extract_declaration(text, resolve_imports(text), source.posix_path)
        if declaration:
            context.add_declaration(declaration)
    return build_hierarchy_from_declarations(context.declarations)
