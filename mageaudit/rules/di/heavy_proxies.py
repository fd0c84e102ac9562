"""Expensive dependencies injected without a proxy.

The correlation is exposed as :func:`find_heavy_dependencies_without_proxy`,
a plain two-input function over per-file symbols and a parsed di.xml index,
so it can be exercised without running a scan.
"""

import posixpath
from collections.abc import Collection, Iterable
from dataclasses import dataclass

from mageaudit.indexer.core import ClassifiedFiles, FileCategory
from mageaudit.indexer.config import DEPENDENCY_CONFIG_FILENAME
from mageaudit.rules.base import RuleInfo, Severity
from mageaudit.rules.common.di_config import DiConfigIndex, DiProcessor
from mageaudit.rules.common.modules import find_di_xml_for_file, is_test_file, module_root
from mageaudit.symbols.index import FileSymbols, SymbolIndex
from mageaudit.utils.logging import logger
from mageaudit.utils.php_text import get_line_number

HEAVY_CLASS_PATTERNS: tuple[str, ...] = ("Session", "Collection")

KNOWN_HEAVY_CLASSES: frozenset[str] = frozenset({
    "Magento\\Customer\\Model\\Session",
    "Magento\\Checkout\\Model\\Session",
    "Magento\\Backend\\Model\\Auth\\Session",
    "Magento\\Framework\\Session\\SessionManager",
    "Magento\\Catalog\\Model\\ResourceModel\\Product\\Collection",
    "Magento\\Framework\\Filesystem",
    "Magento\\Framework\\App\\ResourceConnection",
})


def is_heavy_class(class_name: str) -> bool:
    """Session/Collection lookalikes and the known expensive services; never factories or interfaces."""
    class_name = class_name.lstrip("\\")
    if class_name.endswith(("Factory", "Interface")):
        return False
    if any(pattern in class_name for pattern in HEAVY_CLASS_PATTERNS):
        return True
    return class_name in KNOWN_HEAVY_CLASSES


@dataclass(frozen=True)
class HeavyDependency:
    """A heavy constructor dependency with no proxy configured."""

    file_path: str
    class_name: str
    parameter: str
    type_name: str
    di_file: str | None

    @property
    def proxy(self) -> str:
        return f"{self.type_name}\\Proxy"


def _expected_di_file(file_path: str, companion: str | None) -> str | None:
    if companion:
        return companion
    root = module_root(file_path)
    return f"{root}/etc/{DEPENDENCY_CONFIG_FILENAME}" if root else None


def _companion_scope(companion: str | None, known_paths: Collection[str]) -> list[str] | None:
    """di.xml files of the companion's etc/ tree (global and per-area); None means all files."""
    if companion is None:
        return None
    etc_dir = posixpath.dirname(companion) + "/"
    return [path for path in known_paths if path == companion or path.startswith(etc_dir)]


def find_heavy_dependencies_without_proxy(
    source_entries: Iterable[FileSymbols],
    di_index: DiConfigIndex,
) -> list[HeavyDependency]:
    """Cross-check constructor dependencies against proxy arguments in di.xml.

    A parameter is reported when its consolidated type is heavy and no
    companion di.xml declares ``<type name=Class><argument name=param>``
    ending in ``\\Proxy``. The companion is the nearest ``etc/di.xml`` walking
    up from the source file; when there is none every parsed file counts.

    Parameters whose storage could not be located, and which are not
    forwarded to the parent constructor, are left out: the class may never
    hold on to the instance, so the check has nothing to stand on.

    Args:
        source_entries: Per-file symbols, typically from the SymbolIndex
        di_index: Parsed dependency configuration of the scan

    Returns:
        One HeavyDependency per unproxied heavy parameter, in input order
    """
    known_paths = set(di_index.files)
    found: list[HeavyDependency] = []

    for symbols in source_entries:
        if is_test_file(symbols.path) or not symbols.class_name:
            continue
        if not symbols.signature.found:
            continue

        companion = find_di_xml_for_file(symbols.path, known_paths)
        scope = _companion_scope(companion, known_paths)

        for parameter, resolution in symbols.consolidated.items():
            if resolution.is_unresolved or not is_heavy_class(resolution.value):
                continue
            storage = symbols.signature.storage_of(parameter)
            if (storage is None or storage.is_unresolved) and not symbols.signature.forwards_to_parent(parameter):
                logger.debug(f"{symbols.path}: storage of ${parameter} unresolved, not checked for a proxy")
                continue
            if di_index.has_proxy(symbols.class_name, parameter, scope):
                continue
            found.append(HeavyDependency(
                file_path=symbols.path,
                class_name=symbols.class_name,
                parameter=parameter,
                type_name=resolution.value.lstrip("\\"),
                di_file=_expected_di_file(symbols.path, companion),
            ))
    return found


class ProxyForHeavyClasses(DiProcessor):
    """Heavy classes (sessions, collections, filesystem) should be injected through a proxy."""

    rules = (RuleInfo(
        rule_id="noProxyUsedForHeavyClasses",
        name="No Proxy for Heavy Classes",
        short_description="Heavy classes injected without proxy configuration.",
        long_description=(
            "Some classes such as Session, Collection, and ResourceModel are heavy and should "
            "be injected through a proxy. This avoids performance issues when the class is "
            "instantiated. Using proxies improves performance especially when the class is not "
            "necessarily used, as the proxy delays instantiation until the first method call."
        ),
    ),)
    categories = (FileCategory.SOURCE, FileCategory.DEPENDENCY_XML)

    def analyze(self, di_index: DiConfigIndex, files: ClassifiedFiles, index: SymbolIndex) -> None:
        sources = {source.posix_path: source for source in files[FileCategory.SOURCE]}
        entries = [
            symbols
            for symbols in (index.symbols_for(source) for source in files[FileCategory.SOURCE])
            if symbols is not None
        ]

        for dependency in find_heavy_dependencies_without_proxy(entries, di_index):
            source = sources.get(dependency.file_path)
            line = 1
            if source is not None:
                with self.guard(source):
                    line = get_line_number(source.text, f"${dependency.parameter}") or 1
            self.add_finding(
                dependency.file_path, line,
                f"Class '{dependency.class_name}' injects heavy class '{dependency.type_name}' "
                f"(parameter ${dependency.parameter}) without a proxy. Consider configuring a "
                f"proxy in di.xml to improve performance.",
                Severity.ERROR,
                metadata={
                    "diFile": dependency.di_file,
                    "type": dependency.class_name,
                    "argument": dependency.parameter,
                    "proxy": dependency.proxy,
                },
            )
