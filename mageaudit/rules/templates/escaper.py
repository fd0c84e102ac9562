"""Escaping through ``$block``/``$this`` instead of ``$escaper``."""

import re

from mageaudit.indexer.core import FileCategory, SourceFile
from mageaudit.rules.base import FileProcessor, RuleInfo, Severity
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.php_text import line_number_at

ESCAPE_CALL_RE = re.compile(
    r"\$(block|this)->(escapeHtml|escapeUrl|escapeJs|escapeHtmlAttr|escapeCss|escapeQuote)\s*\("
)


class DeprecatedEscaperUsage(FileProcessor):
    """``$this->escape*`` is an error, ``$block->escape*`` a warning."""

    rules = (RuleInfo(
        rule_id="useEscaper",
        name="Deprecated Escaper Usage",
        short_description="Escape methods called on $block or $this instead of $escaper.",
        long_description=(
            "Since Magento 2.3.5, escape methods (escapeHtml, escapeUrl, escapeJs, escapeHtmlAttr, "
            "escapeCss, escapeQuote) should be called on the $escaper variable instead of $block or "
            "$this in phtml templates. Migrate all escape calls to $escaper->escapeHtml() and "
            "similar methods."
        ),
    ),)
    categories = (FileCategory.TEMPLATE,)

    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        text = source.text
        for match in ESCAPE_CALL_RE.finditer(text):
            variable, method = match.group(1), match.group(2)
            self.add_finding(
                source, line_number_at(text, match.start()),
                f"Use $escaper->{method}() instead of ${variable}->{method}(). "
                f"Escape methods on ${variable} are deprecated since Magento 2.3.5.",
                Severity.ERROR if variable == "this" else Severity.WARNING,
                metadata={"variable": variable, "method": method},
            )
