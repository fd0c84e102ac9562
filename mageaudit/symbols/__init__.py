"""Symbol Resolution Index.

Approximates "which fully-qualified type does this name refer to" from text
patterns alone: import aliases, constructor signatures, where constructor
parameters are stored, and which types extend which.
"""

from .constructors import (
    BASIC_TYPES,
    ConstructorParameter,
    ConstructorSignature,
    consolidate,
    extract_constructor_signature,
)
from .hierarchy import (
    BuildContext,
    TypeDeclaration,
    TypeHierarchyIndex,
    build_hierarchy,
    extract_declaration,
)
from .imports import ImportTable, resolve_imports
from .index import FileSymbols, SymbolIndex, analyze_file
from .resolution import Resolution, ResolutionKind

__all__ = [
    "BASIC_TYPES",
    "BuildContext",
    "ConstructorParameter",
    "ConstructorSignature",
    "FileSymbols",
    "ImportTable",
    "Resolution",
    "ResolutionKind",
    "SymbolIndex",
    "TypeDeclaration",
    "TypeHierarchyIndex",
    "analyze_file",
    "build_hierarchy",
    "consolidate",
    "extract_constructor_signature",
    "extract_declaration",
    "resolve_imports",
]
