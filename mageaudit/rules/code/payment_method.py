"""Payment methods built on the deprecated AbstractMethod."""

import re

from mageaudit.indexer.core import FileCategory, SourceFile
from mageaudit.rules.base import FileProcessor, RuleInfo, Severity
from mageaudit.rules.common.modules import is_test_file
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.php_text import get_line_number, line_number_at

DEPRECATED_CLASS = "Magento\\Payment\\Model\\Method\\AbstractMethod"
_DECLARATION_RE = re.compile(r"class\s+\w+\s+extends\s+[^\n{]*AbstractMethod")


class PaymentInterfaceUseAudit(FileProcessor):
    rules = (RuleInfo(
        rule_id="extensionOfAbstractMethod",
        name="Extension of Deprecated Payment AbstractMethod",
        short_description="Payment method extends deprecated AbstractMethod class.",
        long_description=(
            "The class extends \\Magento\\Payment\\Model\\Method\\AbstractMethod which is deprecated "
            "in Magento 2. Modern payment methods should implement "
            "Magento\\Payment\\Api\\Data\\PaymentMethodInterface or use the payment gateway "
            "adapter. The deprecated base class may not support newer payment features."
        ),
    ),)
    categories = (FileCategory.SOURCE,)

    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        if is_test_file(source.posix_path):
            return
        symbols = index.symbols_for(source)
        declaration = symbols.declaration if symbols else None
        text = source.text
        if declaration is not None:
            if declaration.parent != DEPRECATED_CLASS:
                return
        elif f"extends {DEPRECATED_CLASS}" not in text and f"extends \\{DEPRECATED_CLASS}" not in text:
            return

        match = _DECLARATION_RE.search(text)
        if match:
            line = line_number_at(text, match.start())
        elif declaration is not None:
            line = declaration.line
        else:
            line = get_line_number(text, f"extends \\{DEPRECATED_CLASS}") or get_line_number(
                text, f"extends {DEPRECATED_CLASS}") or 1
        self.add_finding(
            source, line,
            "This payment method extends the deprecated \\Magento\\Payment\\Model\\Method\\AbstractMethod. "
            "Consider implementing PaymentMethodInterface or using a modern payment base class instead.",
            Severity.ERROR,
        )
