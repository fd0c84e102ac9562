"""The deprecated ``Magento\\Framework\\Registry`` injected in a constructor."""

from mageaudit.indexer.core import FileCategory, SourceFile
from mageaudit.rules.base import FileProcessor, RuleInfo, Severity
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.php_text import get_line_number

REGISTRY_CLASS = "Magento\\Framework\\Registry"


class UseOfRegistry(FileProcessor):
    rules = (RuleInfo(
        rule_id="magento.code.use-of-registry",
        name="Use of Registry",
        short_description="Magento\\Framework\\Registry is deprecated",
        long_description=(
            "The Registry pattern is deprecated in Magento 2. It bypasses dependency injection, "
            "creates hidden dependencies, makes code harder to test, and can lead to unexpected "
            "state mutations. Use constructor injection for explicit dependencies or data "
            "persistors for session-like storage instead."
        ),
    ),)
    categories = (FileCategory.SOURCE,)

    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        symbols = index.symbols_for(source)
        if symbols is None:
            return
        class_name = symbols.class_name or "UnknownClass"
        for parameter, resolution in symbols.consolidated.items():
            if resolution.is_unresolved or resolution.value.lstrip("\\") != REGISTRY_CLASS:
                continue
            self.add_finding(
                source, get_line_number(source.text, f"${parameter}") or 1,
                f'Class "{class_name}" uses deprecated Magento\\Framework\\Registry in constructor '
                f'parameter "${parameter}". Use dependency injection or data persistors instead.',
                Severity.ERROR,
            )
