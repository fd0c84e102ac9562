"""``count()`` on collections instead of ``getSize()``.

Two phases inside one ``process`` call: source files are checked and, at
the same time, mapped for methods that return a freshly created
collection; templates are then checked for counts on what those methods
return through ``$block``.
"""

import re

from mageaudit.indexer.core import ClassifiedFiles, FileCategory, SourceFile
from mageaudit.rules.base import Processor, RuleInfo, Severity
from mageaudit.symbols.index import FileSymbols, SymbolIndex
from mageaudit.symbols.types import is_collection_factory_type, is_collection_type
from mageaudit.utils.logging import logger
from mageaudit.utils.php_text import line_number_at, locate_brace_block

METHOD_RE = re.compile(r"function\s+(\w+)\s*\([^)]*\)[^{;]*\{")
BLOCK_VAR_RE = re.compile(r"@var\s+\\?([\w\\]+)\s+\$block\b")


def _created_from(property_name: str, text: str) -> list[str]:
    """Local variables assigned from ``<property>->create(...)``, first occurrence order."""
    pattern = re.compile(r"(\$\w+)\s*=\s*" + re.escape(property_name) + r"->create\s*\(")
    return list(dict.fromkeys(pattern.findall(text)))


def collection_properties(symbols: FileSymbols) -> tuple[list[str], list[str]]:
    """Storage of injected collections and of injected collection factories.

    Parameters whose storage was not found are left out.
    """
    direct, factories = [], []
    for parameter, resolution in symbols.consolidated.items():
        if resolution.is_unresolved:
            continue
        is_direct = is_collection_type(resolution.value)
        is_factory = is_collection_factory_type(resolution.value)
        if not (is_direct or is_factory):
            continue
        storage = symbols.signature.storage_of(parameter)
        if storage is None or not storage.is_resolved:
            logger.debug(f"{symbols.path}: storage of ${parameter} unresolved, count() not tracked")
            continue
        (direct if is_direct else factories).append(storage.value)
    return direct, factories


def collection_returning_methods(text: str, factory_properties: list[str]) -> list[str]:
    """Methods that create a collection from a factory property and return it."""
    variables = [var for prop in factory_properties for var in _created_from(prop, text)]
    if not variables:
        return []
    methods = []
    for match in METHOD_RE.finditer(text):
        name = match.group(1)
        if name == "__construct":
            continue
        block = locate_brace_block(text, match.start())
        if block is None:
            continue
        for variable in variables:
            escaped = re.escape(variable)
            if (re.search(escaped + r"\s*=\s*\$this->\w+->create\s*\(", block.inner)
                    and re.search(r"return\s+" + escaped + r"\s*;", block.inner)):
                methods.append(name)
                break
    return methods


class CountOnCollection(Processor):
    rules = (RuleInfo(
        rule_id="magento.performance.count-on-collection",
        name="count() on Collection",
        short_description="count() used on a collection instead of getSize().",
        long_description=(
            "Using count() on a Magento collection forces it to load all items from the database "
            "into memory just to count them. Use getSize() instead, which executes a COUNT(*) SQL "
            "query without loading any items. This applies to PHP's count($collection) function "
            "and to the collection's own ->count() method."
        ),
    ),)
    categories = (FileCategory.SOURCE, FileCategory.TEMPLATE)

    def process(self, files: ClassifiedFiles, index: SymbolIndex) -> None:
        returning: dict[str, list[str]] = {}

        for source in files[FileCategory.SOURCE]:
            with self.guard(source):
                methods = self._analyze_source(source, index)
                symbols = index.symbols_for(source)
                if methods and symbols is not None and symbols.class_name:
                    returning[symbols.class_name] = methods

        for template in files[FileCategory.TEMPLATE]:
            with self.guard(template):
                self._analyze_template(template, returning)

    def _analyze_source(self, source: SourceFile, index: SymbolIndex) -> list[str]:
        symbols = index.symbols_for(source)
        if symbols is None or not symbols.signature.found:
            return []
        text = source.text
        direct, factories = collection_properties(symbols)
        for prop in direct:
            self._detect_count(source, text, prop)
        for prop in factories:
            for variable in _created_from(prop, text):
                self._detect_count(source, text, variable)
        return collection_returning_methods(text, factories)

    def _detect_count(self, source: SourceFile, text: str, handle: str) -> None:
        escaped = re.escape(handle)
        for match in re.finditer(r"\bcount\s*\(\s*" + escaped + r"\s*\)", text):
            self.add_finding(
                source, line_number_at(text, match.start()),
                f"count({handle}) loads all collection items into memory. "
                f"Use {handle}->getSize() instead for a COUNT(*) SQL query.",
                Severity.WARNING,
                metadata={"variable": handle},
            )
        for match in re.finditer(escaped + r"->count\s*\(", text):
            self.add_finding(
                source, line_number_at(text, match.start()),
                f"{handle}->count() loads all collection items into memory. "
                f"Use {handle}->getSize() instead for a COUNT(*) SQL query.",
                Severity.WARNING,
                metadata={"variable": handle},
            )

    def _analyze_template(self, template: SourceFile, returning: dict[str, list[str]]) -> None:
        if not returning:
            return
        text = template.text
        declared = BLOCK_VAR_RE.search(text)
        if not declared:
            return
        methods = returning.get(declared.group(1).replace("\\\\", "\\").lstrip("\\"), [])

        for method in methods:
            escaped = re.escape(method)
            assigned = re.findall(r"(\$\w+)\s*=\s*\$block->" + escaped + r"\s*\(", text)
            for variable in dict.fromkeys(assigned):
                self._detect_count(template, text, variable)

            for match in re.finditer(r"\$block->" + escaped + r"\s*\([^)]*\)->count\s*\(", text):
                self.add_finding(
                    template, line_number_at(text, match.start()),
                    f"$block->{method}()->count() loads all collection items into memory. "
                    f"Use $block->{method}()->getSize() instead for a COUNT(*) SQL query.",
                    Severity.WARNING,
                )
            for match in re.finditer(r"\bcount\s*\(\s*\$block->" + escaped + r"\s*\([^)]*\)\s*\)", text):
                self.add_finding(
                    template, line_number_at(text, match.start()),
                    f"count($block->{method}()) loads all collection items into memory. "
                    f"Use $block->{method}()->getSize() instead for a COUNT(*) SQL query.",
                    Severity.WARNING,
                )
