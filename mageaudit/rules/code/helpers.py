"""Helpers extending AbstractHelper, worse when templates call them."""

import re

from mageaudit.indexer.core import ClassifiedFiles, FileCategory, SourceFile
from mageaudit.rules.base import Processor, RuleInfo, Severity
from mageaudit.rules.common.modules import is_test_file
from mageaudit.symbols.imports import resolve_imports
from mageaudit.symbols.index import SymbolIndex

ABSTRACT_HELPER = "Magento\\Framework\\App\\Helper\\AbstractHelper"

# Core helpers that are still part of the public API
IGNORED_HELPERS: frozenset[str] = frozenset({
    "Magento\\Customer\\Helper\\Address",
    "Magento\\Tax\\Helper\\Data",
    "Magento\\Msrp\\Helper\\Data",
    "Magento\\Catalog\\Helper\\Output",
    "Magento\\Directory\\Helper\\Data",
})

HELPER_CALL_RE = re.compile(r"\$this->helper\((.*?)\)", re.DOTALL)

EXTENSION_OF_ABSTRACT_HELPER = RuleInfo(
    rule_id="extensionOfAbstractHelper",
    name="Extension of AbstractHelper",
    short_description="Helper class extends deprecated AbstractHelper.",
    long_description=(
        "Helper classes should not extend Magento\\Framework\\App\\Helper\\AbstractHelper. This "
        "pattern is deprecated in Magento 2. Helpers should be simple utility classes without "
        "framework dependencies, or the logic should move to ViewModels or service classes."
    ),
)
HELPERS_INSTEAD_OF_VIEW_MODELS = RuleInfo(
    rule_id="helpersInsteadOfViewModels",
    name="Helpers Instead of ViewModels",
    short_description="Template uses helper instead of ViewModel.",
    long_description=(
        "Templates should not use helpers for presentation logic. ViewModels provide a clearer "
        "separation of concerns and are more testable. Move presentation logic from helpers to "
        "ViewModels."
    ),
)


def helper_calls(text: str) -> list[str]:
    """Helper classes requested through ``$this->helper(...)`` in a template."""
    imports = None
    found = []
    for match in HELPER_CALL_RE.finditer(text):
        class_name = match.group(1).strip().strip("'\" ").replace("::class", "").strip()
        class_name = class_name.replace("\\\\", "\\").lstrip("\\")
        if not class_name or class_name in IGNORED_HELPERS:
            continue
        if "\\" not in class_name:
            imports = imports or resolve_imports(text)
            explicit = imports.alias_for(class_name)
            if explicit is not None:
                class_name = explicit.value
        found.append(class_name)
    return found


class Helpers(Processor):
    rules = (EXTENSION_OF_ABSTRACT_HELPER, HELPERS_INSTEAD_OF_VIEW_MODELS)
    categories = (FileCategory.SOURCE, FileCategory.TEMPLATE)

    def process(self, files: ClassifiedFiles, index: SymbolIndex) -> None:
        used_in: dict[str, list[str]] = {}
        for template in files[FileCategory.TEMPLATE]:
            with self.guard(template):
                for class_name in helper_calls(template.text):
                    used_in.setdefault(class_name, []).append(template.posix_path)

        for source in files[FileCategory.SOURCE]:
            if is_test_file(source.posix_path):
                continue
            with self.guard(source):
                self._check_helper(source, index, used_in)

    def _check_helper(self, source: SourceFile, index: SymbolIndex, used_in: dict[str, list[str]]) -> None:
        symbols = index.symbols_for(source)
        declaration = symbols.declaration if symbols else None
        if declaration is None or declaration.parent != ABSTRACT_HELPER:
            return

        templates = used_in.get(declaration.name, [])
        if templates:
            self.add_finding(
                source, declaration.line,
                f"Helper class '{declaration.name}' extends AbstractHelper and is used in "
                f"{len(templates)} template(s). Move presentation logic to ViewModel instead.",
                Severity.ERROR,
                rule_id=HELPERS_INSTEAD_OF_VIEW_MODELS.rule_id,
                metadata={"templates": templates},
            )
        else:
            self.add_finding(
                source, declaration.line,
                f"Helper class '{declaration.name}' extends deprecated AbstractHelper. Consider "
                f"refactoring to a simple utility class or service.",
                Severity.WARNING,
                rule_id=EXTENSION_OF_ABSTRACT_HELPER.rule_id,
            )
