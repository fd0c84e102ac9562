"""Direct ObjectManager usage and leftover ObjectManager imports."""

import re

from mageaudit.indexer.core import FileCategory, SourceFile
from mageaudit.rules.base import FileProcessor, RuleInfo, Severity
from mageaudit.symbols.index import FileSymbols, SymbolIndex
from mageaudit.utils.php_text import line_number_at

OM_INTERFACE = "Magento\\Framework\\ObjectManagerInterface"
OM_CLASS = "Magento\\Framework\\App\\ObjectManager"

REPLACE_OBJECT_MANAGER = RuleInfo(
    rule_id="replaceObjectManager",
    name="Use of ObjectManager",
    short_description="ObjectManager should not be used directly",
    long_description=(
        "The ObjectManager should not be used directly in Magento 2 code. Use dependency "
        "injection in constructors instead. Direct ObjectManager usage bypasses the DI "
        "container and makes testing difficult. Factory classes are the only exception."
    ),
)
USELESS_IMPORT = RuleInfo(
    rule_id="magento.code.useless-object-manager-import",
    name="Useless ObjectManager Import",
    short_description="ObjectManager imported but not used",
    long_description=(
        "The ObjectManager was imported but does not seem to be used in the code. Remove the "
        "unused import to keep the code clean."
    ),
)

_GET_INSTANCE = r"\\?(?:Magento\\Framework\\App\\)?ObjectManager::getInstance\s*\(\s*\)"
_FETCH = r"\s*->\s*(?:get|create)\s*\(\s*['\"]?\\?([A-Za-z0-9_\\]+)(?:::class|['\"])"
FACTORY_CLASS_RE = re.compile(r"class\s+\w*Factory\b")
LOCAL_INSTANCE_RE = re.compile(r"(\$\w+)\s*=\s*" + _GET_INSTANCE)
PROPERTY_INSTANCE_RE = re.compile(r"\$this->(\w+)\s*=\s*" + _GET_INSTANCE)
OM_IMPORT_RE = re.compile(
    r"^[ \t]*use\s+\\?(?:Magento\\Framework\\ObjectManagerInterface|Magento\\Framework\\App\\ObjectManager)\b",
    re.MULTILINE,
)


def derive_property_name(class_name: str) -> str:
    """``Vendor\\Module\\Model\\FooBar`` -> ``fooBar``."""
    short = class_name.rsplit("\\", 1)[-1]
    return short[:1].lower() + short[1:]


def usage_patterns(text: str, symbols: FileSymbols | None) -> list[re.Pattern]:
    """Fetch patterns for every handle on the ObjectManager the file holds."""
    patterns = [re.compile(_GET_INSTANCE + _FETCH)]
    for variable in dict.fromkeys(LOCAL_INSTANCE_RE.findall(text)):
        if not variable.startswith("$this"):
            patterns.append(re.compile(re.escape(variable) + _FETCH))
    for prop in dict.fromkeys(PROPERTY_INSTANCE_RE.findall(text)):
        patterns.append(re.compile(r"\$this->" + re.escape(prop) + _FETCH))

    if symbols is not None:
        for parameter, resolution in symbols.consolidated.items():
            if resolution.is_unresolved:
                continue
            if OM_INTERFACE in resolution.value or OM_CLASS in resolution.value:
                storage = symbols.signature.storage_of(parameter)
                handle = storage.value if storage is not None and storage.is_resolved else f"${parameter}"
                patterns.append(re.compile(re.escape(handle) + _FETCH))
    return patterns


class UseOfObjectManager(FileProcessor):
    rules = (REPLACE_OBJECT_MANAGER, USELESS_IMPORT)
    categories = (FileCategory.SOURCE,)

    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        text = source.text
        if FACTORY_CLASS_RE.search(text):
            return
        if OM_INTERFACE not in text and OM_CLASS not in text and "ObjectManager::getInstance" not in text:
            return

        symbols = index.symbols_for(source)
        usages = 0
        seen: set[int] = set()
        for pattern in usage_patterns(text, symbols):
            for match in pattern.finditer(text):
                if match.start() in seen:
                    continue
                seen.add(match.start())
                class_name = match.group(1)
                usages += 1
                self.add_finding(
                    source, line_number_at(text, match.start()),
                    f"Direct use of ObjectManager to get '{class_name}'. Use dependency injection instead.",
                    Severity.ERROR,
                    rule_id=REPLACE_OBJECT_MANAGER.rule_id,
                    metadata={"injections": {class_name: derive_property_name(class_name)}},
                )

        imported = OM_IMPORT_RE.search(text)
        if imported and not usages:
            self.add_finding(
                source, line_number_at(text, imported.start()),
                "ObjectManager imported but not used. Remove the unused import.",
                Severity.WARNING,
                rule_id=USELESS_IMPORT.rule_id,
            )
