"""Constructor signature extraction and parameter type consolidation."""

import re
from collections.abc import Iterator
from dataclasses import dataclass

from mageaudit.utils.php_text import (
    extract_paren_group,
    line_number_at,
    locate_brace_block,
    split_top_level,
)

from .imports import ImportTable
from .resolution import Resolution

# Parameter types that never name an injectable class
BASIC_TYPES: frozenset[str] = frozenset({
    "string",
    "int",
    "integer",
    "float",
    "double",
    "bool",
    "boolean",
    "array",
    "callable",
    "iterable",
    "object",
    "mixed",
    "self",
    "static",
    "null",
    "void",
    "false",
    "true",
    "resource",
})

VISIBILITY_MODIFIERS: frozenset[str] = frozenset({"public", "protected", "private", "readonly"})

CONSTRUCTOR_RE = re.compile(r"function\s+__construct\s*\(", re.IGNORECASE)
PARENT_CONSTRUCTOR_RE = re.compile(r"parent::__construct\s*\(", re.IGNORECASE)
_ATTRIBUTE_RE = re.compile(r"#\[[^\]]*\]")
_VARIABLE_RE = re.compile(r"\$(\w+)")


def _clean_type(token: str) -> str | None:
    """Reduce a declared type to the one class name rules should look at.

    ``?Foo`` becomes ``Foo``; for unions and intersections the first member
    that is not null/false wins.
    """
    token = token.strip().lstrip("?").strip("()")
    if not token:
        return None
    for member in re.split(r"[|&]", token):
        member = member.strip().lstrip("?").strip("()")
        if member and member.lower() not in ("null", "false"):
            return member
    return None


@dataclass(frozen=True)
class ConstructorParameter:
    """One declared constructor parameter."""

    name: str
    type_token: str | None
    declaration: str
    promoted: bool = False
    storage: Resolution = Resolution.unresolved()
    resolved_type: Resolution = Resolution.unresolved()

    @property
    def variable(self) -> str:
        return f"${self.name}"

    @property
    def is_scalar(self) -> bool:
        return self.type_token is not None and self.type_token.lstrip("\\").lower() in BASIC_TYPES


@dataclass(frozen=True)
class ConstructorSignature:
    """Ordered constructor parameters of one file.

    An empty signature (``found`` False) means the file declares no
    constructor; a constructor without parameters has ``found`` True.
    """

    parameters: tuple[ConstructorParameter, ...] = ()
    parent_arguments: tuple[str, ...] = ()
    body: str = ""
    line: int | None = None

    @property
    def found(self) -> bool:
        return self.line is not None

    def __iter__(self) -> Iterator[ConstructorParameter]:
        return iter(self.parameters)

    def __len__(self) -> int:
        return len(self.parameters)

    def get(self, name: str) -> ConstructorParameter | None:
        name = name.lstrip("$")
        for parameter in self.parameters:
            if parameter.name == name:
                return parameter
        return None

    def storage_of(self, name: str) -> Resolution | None:
        """Where a parameter is kept, or None if there is no such parameter."""
        parameter = self.get(name)
        return parameter.storage if parameter else None

    def forwards_to_parent(self, name: str) -> bool:
        return name.lstrip("$") in self.parent_arguments


def parse_parameter(declaration: str) -> ConstructorParameter | None:
    """Parse one comma-separated parameter declaration.

    Attributes, default values, by-reference and variadic markers are
    tolerated; visibility and readonly modifiers mark a promoted property.
    """
    text = _ATTRIBUTE_RE.sub(" ", declaration)
    text = text.split("=", 1)[0]
    tokens = text.split()
    name = None
    promoted = False
    type_parts: list[str] = []
    for token in tokens:
        variable = _VARIABLE_RE.search(token)
        if variable:
            name = variable.group(1)
            # "Foo&$x" or "Foo...$x" glue the type to the variable
            prefix = token[:variable.start()].rstrip("&.")
            if prefix:
                type_parts.append(prefix)
            break
        if token.lower() in VISIBILITY_MODIFIERS:
            promoted = True
            continue
        type_parts.append(token)
    if name is None:
        return None
    return ConstructorParameter(
        name=name,
        type_token=_clean_type("".join(type_parts)),
        declaration=" ".join(declaration.split()),
        promoted=promoted,
    )


def find_storage(parameter: ConstructorParameter, body: str) -> Resolution:
    """Locate the property or local variable a parameter is assigned to."""
    if parameter.promoted:
        return Resolution.resolved(f"$this->{parameter.name}")
    assignment = re.search(
        r"(\$this->\w+|\$\w+)\s*=\s*\$" + re.escape(parameter.name) + r"\s*;",
        body,
    )
    if assignment:
        return Resolution.resolved(assignment.group(1))
    return Resolution.unresolved()


def parent_constructor_arguments(body: str) -> tuple[str, ...]:
    """Bare variable names passed straight to ``parent::__construct``."""
    match = PARENT_CONSTRUCTOR_RE.search(body)
    if not match:
        return ()
    group = extract_paren_group(body, match.end() - 1)
    if group is None:
        return ()
    names = []
    for argument in split_top_level(group.inner):
        variable = re.fullmatch(r"\$(\w+)", argument.strip())
        if variable:
            names.append(variable.group(1))
    return tuple(names)


def extract_constructor_signature(text: str, imports: ImportTable | None = None) -> ConstructorSignature:
    """Extract the constructor parameters, their storage and parent forwarding.

    Args:
        text: Full file contents
        imports: When given, each parameter's ``resolved_type`` is filled in

    Returns:
        ConstructorSignature; empty when the file has no constructor or the
        parameter list is unterminated
    """
    match = CONSTRUCTOR_RE.search(text)
    if not match:
        return ConstructorSignature()
    group = extract_paren_group(text, match.end() - 1)
    if group is None:
        return ConstructorSignature()

    body = ""
    cursor = group.end + 1
    while cursor < len(text) and text[cursor] not in "{;":
        cursor += 1
    if cursor < len(text) and text[cursor] == "{":
        block = locate_brace_block(text, cursor)
        body = block.inner if block else ""

    parameters = []
    for declaration in split_top_level(group.inner):
        parameter = parse_parameter(declaration)
        if parameter is None:
            continue
        storage = find_storage(parameter, body)
        resolved_type = Resolution.unresolved()
        if imports is not None and parameter.type_token and not parameter.is_scalar:
            resolved_type = resolve_type(parameter.type_token, imports)
        parameters.append(ConstructorParameter(
            name=parameter.name,
            type_token=parameter.type_token,
            declaration=parameter.declaration,
            promoted=parameter.promoted,
            storage=storage,
            resolved_type=resolved_type,
        ))

    return ConstructorSignature(
        parameters=tuple(parameters),
        parent_arguments=parent_constructor_arguments(body),
        body=body,
        line=line_number_at(text, match.start()),
    )


def resolve_type(type_token: str, imports: ImportTable) -> Resolution:
    """Alias or fully-qualified tokens resolve; anything else falls back to the file namespace.

    Without a namespace the token is kept verbatim, still as FALLBACK.
    """
    return imports.lookup(type_token)


def consolidate(signature: ConstructorSignature, imports: ImportTable) -> dict[str, Resolution]:
    """Map each non-scalar parameter name to its resolved type.

    Untyped parameters are kept as UNRESOLVED so the entry count still
    matches the non-scalar parameter count.
    """
    consolidated: dict[str, Resolution] = {}
    for parameter in signature:
        if parameter.is_scalar:
            continue
        if parameter.type_token is None:
            consolidated[parameter.name] = Resolution.unresolved()
            continue
        consolidated[parameter.name] = resolve_type(parameter.type_token, imports)
    return consolidated
