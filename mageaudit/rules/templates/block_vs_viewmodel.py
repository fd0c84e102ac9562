"""``$this`` in templates and templates pulling data straight from blocks."""

import re

from mageaudit.indexer.core import FileCategory, SourceFile
from mageaudit.rules.base import FileProcessor, RuleInfo, Severity
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.php_text import line_number_at

ALLOWED_METHODS: frozenset[str] = frozenset({
    "getJsLayout",
    "getChildHtml",
    "getChildChildHtml",
    "getBlockHtml",
    "escapeHtml",
    "escapeUrl",
    "escapeJs",
    "getUrl",
    "getBaseUrl",
    "getViewFileUrl",
})
LAYOUT_SUFFIXES = ("Child", "ChildHtml", "Html")

VIEW_MODEL_PATTERNS = (
    re.compile(r"\$viewModel"),
    re.compile(r"\$block->getViewModel\(\)"),
    re.compile(r"\$block->getData\(['\"]view_model['\"]\)"),
)
THIS_CALL_RE = re.compile(r"\$this->(get|is|has|can)\w+\s*\(")
BLOCK_CALL_RE = re.compile(r"\$block->(get|is)(\w+)\s*\(")

THIS_TO_BLOCK = RuleInfo(
    rule_id="thisToBlock",
    name="Use of $this instead of $block",
    short_description="Template uses $this instead of $block variable.",
    long_description=(
        "Using $this in phtml templates is not recommended as it may not be compatible with "
        "alternative templating systems. Using $block ensures broader compatibility."
    ),
)
DATA_CRUNCH = RuleInfo(
    rule_id="dataCrunchInPhtml",
    name="Potential Data Crunch in Template",
    short_description="Template may be retrieving data through blocks instead of ViewModels.",
    long_description=(
        "Using blocks to retrieve data or configuration is generally discouraged. ViewModels "
        "provide a clearer separation of logic and presentation, making code more testable. "
        "Consider moving data retrieval from blocks to ViewModels."
    ),
)


def suspicious_block_calls(text: str) -> list[str]:
    """``$block->get*/is*(`` calls that are not layout or escaping helpers."""
    calls = []
    for match in BLOCK_CALL_RE.finditer(text):
        prefix, rest = match.group(1), match.group(2)
        if prefix + rest in ALLOWED_METHODS or rest in LAYOUT_SUFFIXES:
            continue
        calls.append(match.group(0))
    return calls


class AdvancedBlockVsViewModel(FileProcessor):
    rules = (THIS_TO_BLOCK, DATA_CRUNCH)
    categories = (FileCategory.TEMPLATE,)

    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        text = source.text
        self._check_this(source, text)
        self._check_data_crunch(source, text)

    def _check_this(self, source: SourceFile, text: str) -> None:
        matches = list(THIS_CALL_RE.finditer(text))
        if not matches:
            return
        methods = ", ".join(dict.fromkeys(match.group(0).strip() for match in matches))
        self.add_finding(
            source, line_number_at(text, matches[0].start()),
            f"Template uses $this instead of $block. Found methods: {methods}. "
            f"This may cause compatibility issues.",
            Severity.ERROR,
            rule_id=THIS_TO_BLOCK.rule_id,
        )

    def _check_data_crunch(self, source: SourceFile, text: str) -> None:
        if any(pattern.search(text) for pattern in VIEW_MODEL_PATTERNS):
            return
        calls = suspicious_block_calls(text)
        threshold = self.config.get("rules", {}).get("data_crunch_threshold", 3)
        if len(calls) < threshold:
            return
        unique = list(dict.fromkeys(calls))
        listed = ", ".join(unique[:5])
        if len(unique) > 5:
            listed += f", ... ({len(unique) - 5} more)"
        self.add_finding(
            source, 1,
            f"Template has {len(unique)} data retrieval calls: {listed}. "
            f"Consider using a ViewModel for better separation of concerns.",
            Severity.WARNING,
            rule_id=DATA_CRUNCH.rule_id,
        )
