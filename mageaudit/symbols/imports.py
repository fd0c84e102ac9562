"""Per-file import alias tables."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .resolution import Resolution

NAMESPACE_RE = re.compile(r"^\s*namespace\s+([\w\\]+)\s*[;{]", re.MULTILINE)
USE_RE = re.compile(r"^\s*use\s+(?!function\b|const\b)([^;]+);", re.MULTILINE)
DECLARATION_START_RE = re.compile(
    r"^\s*(?:(?:abstract|final|readonly)\s+)*(?:class|interface|trait|enum)\s+\w+",
    re.MULTILINE,
)
_ALIAS_RE = re.compile(r"^(.*?)\s+as\s+(\w+)$", re.IGNORECASE)


def _short_name(name: str) -> str:
    return name.rsplit("\\", 1)[-1]


@dataclass(frozen=True)
class ImportTable:
    """Short name to fully-qualified name mapping for one file."""

    namespace: str | None = None
    aliases: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def lookup(self, name: str) -> Resolution:
        """Resolve a type token as PHP would inside this file.

        A leading backslash or a known alias gives RESOLVED. Anything else is
        qualified with the file namespace and returned as FALLBACK.
        """
        name = name.strip()
        if name.startswith("\\"):
            return Resolution.resolved(name.lstrip("\\"))
        head, _, rest = name.partition("\\")
        if head in self.aliases:
            target = self.aliases[head]
            return Resolution.resolved(f"{target}\\{rest}" if rest else target)
        if self.namespace:
            return Resolution.fallback(f"{self.namespace}\\{name}")
        return Resolution.fallback(name)

    def alias_for(self, name: str) -> Resolution | None:
        """Explicit resolution only: alias or fully-qualified token, else None."""
        resolution = self.lookup(name)
        return resolution if resolution.is_resolved else None

    def qualify(self, name: str) -> str:
        return self.lookup(name).value

    def has_import(self, fqcn: str) -> bool:
        return fqcn.lstrip("\\") in self.aliases.values()


def _parse_use_clause(clause: str) -> dict[str, str]:
    """Expand one ``use`` clause, including grouped ``A\\{B, C as D}`` syntax."""
    aliases: dict[str, str] = {}
    clause = " ".join(clause.split())
    if "{" in clause:
        prefix, _, group = clause.partition("{")
        prefix = prefix.strip().rstrip("\\").lstrip("\\")
        members = [prefix + "\\" + member.strip() for member in group.rstrip("}").split(",") if member.strip()]
    else:
        members = [part.strip() for part in clause.split(",") if part.strip()]

    for member in members:
        member = member.lstrip("\\")
        alias_match = _ALIAS_RE.match(member)
        if alias_match:
            target, alias = alias_match.group(1).strip().lstrip("\\"), alias_match.group(2)
        else:
            target, alias = member, _short_name(member)
        if target:
            aliases[alias] = target
    return aliases


def resolve_imports(text: str) -> ImportTable:
    """Build the ImportTable for a file from its namespace and ``use`` statements.

    Only the header before the first type declaration is read, so trait
    ``use`` lines inside a class body are not mistaken for imports.
    """
    declaration = DECLARATION_START_RE.search(text)
    header = text[:declaration.start()] if declaration else text

    namespace_match = NAMESPACE_RE.search(header)
    namespace = namespace_match.group(1).strip("\\") if namespace_match else None

    aliases: dict[str, str] = {}
    for match in USE_RE.finditer(header):
        aliases.update(_parse_use_clause(match.group(1)))

    return ImportTable(namespace=namespace, aliases=MappingProxyType(aliases))
