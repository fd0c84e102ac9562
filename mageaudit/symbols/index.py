"""Symbol Resolution Index, built once per scan from the source bucket."""

from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from types import MappingProxyType

from mageaudit.indexer.core import SkipRecord, SourceFile
from mageaudit.indexer.exceptions import UnreadableFileError
from mageaudit.utils.logging import logger

from .constructors import ConstructorSignature, consolidate, extract_constructor_signature
from .hierarchy import (
    BuildContext,
    TypeDeclaration,
    TypeHierarchyIndex,
    build_hierarchy_from_declarations,
    extract_declaration,
)
from .imports import ImportTable, resolve_imports
from .resolution import Resolution


@dataclass(frozen=True)
class FileSymbols:
    """Everything the resolver knows about one source file."""

    path: str
    imports: ImportTable
    signature: ConstructorSignature
    declaration: TypeDeclaration | None = None
    consolidated: Mapping[str, Resolution] = field(default_factory=lambda: MappingProxyType({}))

    @property
    def class_name(self) -> str | None:
        return self.declaration.name if self.declaration else None


def analyze_file(source: SourceFile) -> FileSymbols:
    """Parse imports, constructor and declaration of one file.

    Raises:
        UnreadableFileError: the file cannot be read
    """
    text = source.text
    imports = resolve_imports(text)
    signature = extract_constructor_signature(text, imports)
    return FileSymbols(
        path=source.posix_path,
        imports=imports,
        signature=signature,
        declaration=extract_declaration(text, imports, source.posix_path),
        consolidated=MappingProxyType(consolidate(signature, imports)),
    )


class SymbolIndex:
    """Read-only view over per-file symbols and the type hierarchy."""

    def __init__(self, symbols: Mapping[str, FileSymbols], hierarchy: TypeHierarchyIndex,
                 declarations: Iterable[TypeDeclaration] = (), skipped: Iterable[SkipRecord] = ()):
        self._symbols = MappingProxyType(dict(symbols))
        self.hierarchy = hierarchy
        by_name: dict[str, TypeDeclaration] = {}
        # Sorted so a class declared twice resolves the same way every scan
        for declaration in sorted(declarations, key=lambda d: d.path):
            by_name.setdefault(declaration.name, declaration)
        self._declarations = MappingProxyType(by_name)
        self.skipped = tuple(skipped)

    @classmethod
    def build(cls, source_files: Iterable[SourceFile], max_workers: int = 4,
              context: BuildContext | None = None) -> "SymbolIndex":
        """Analyze every source file once, in parallel, and freeze the result.

        Args:
            source_files: The source bucket of the classification
            max_workers: Worker threads for per-file analysis
            context: Per-scan build context; a fresh one when omitted

        Returns:
            SymbolIndex that processors may share without locking
        """
        context = context or BuildContext()
        source_files = list(source_files)
        by_real_path: dict[str, FileSymbols] = {}
        skipped: list[SkipRecord] = []

        def process_file(source: SourceFile) -> tuple[str, FileSymbols] | None:
            real_path = source.real_path()
            if not context.claim(real_path):
                return None
            symbols = analyze_file(source)
            if symbols.declaration:
                context.add_declaration(symbols.declaration)
            return real_path, symbols

        with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
            futures = {executor.submit(process_file, source): source for source in source_files}

            for future in as_completed(futures):
                source = futures[future]
                try:
                    result = future.result()
                except UnreadableFileError as e:
                    logger.warning(f"Skipping {source.path} in symbol index: {e.reason}")
                    skipped.append(SkipRecord(path=str(source.path), reason=e.reason))
                    continue
                except Exception as e:
                    logger.warning(f"Symbol extraction failed for {source.path}: {e}")
                    skipped.append(SkipRecord(path=str(source.path), reason=f"symbol extraction failed: {e}"))
                    continue
                if result:
                    by_real_path[result[0]] = result[1]

        symbols = {}
        for source in source_files:
            analyzed = by_real_path.get(source.real_path())
            if analyzed is not None:
                symbols[str(source.path)] = analyzed

        hierarchy = build_hierarchy_from_declarations(context.declarations)
        logger.debug(f"Symbol index: {len(by_real_path)} files, {len(hierarchy.edges)} supertypes")
        return cls(symbols, hierarchy, context.declarations, skipped)

    def symbols_for(self, source: SourceFile | str) -> FileSymbols | None:
        """Symbols of a source file; None if it was skipped or is not a source file."""
        key = str(source.path) if isinstance(source, SourceFile) else str(source)
        return self._symbols.get(key)

    def get_subtypes(self, type_name: str) -> frozenset[str]:
        """See TypeHierarchyIndex.get_subtypes; raises SubtypesNotFoundError."""
        return self.hierarchy.get_subtypes(type_name)

    def declaration_of(self, class_name: str) -> TypeDeclaration | None:
        return self._declarations.get(class_name.lstrip("\\"))

    def symbols_for_class(self, class_name: str) -> FileSymbols | None:
        declaration = self.declaration_of(class_name)
        if declaration is None:
            return None
        for symbols in self._symbols.values():
            if symbols.path == declaration.path:
                return symbols
        return None

    def interfaces_of(self, class_name: str) -> tuple[str, ...]:
        """Interfaces declared by a class and by its ancestors declared in the scan."""
        interfaces: list[str] = []
        seen: set[str] = set()
        current = self.declaration_of(class_name)
        while current is not None and current.name not in seen:
            seen.add(current.name)
            interfaces.extend(i for i in current.interfaces if i not in interfaces)
            current = self.declaration_of(current.parent) if current.parent else None
        return tuple(interfaces)

    def api_interface_of(self, class_name: str) -> str | None:
        """First service-contract (``\\Api\\``) interface implemented by a class, if declared."""
        for interface in self.interfaces_of(class_name):
            if "Api" in interface:
                return interface
        return None

    def __len__(self) -> int:
        return len(self._symbols)
