"""Around plugins that only wrap on one side of the original call."""

import re

from mageaudit.indexer.core import FileCategory, SourceFile
from mageaudit.rules.base import FileProcessor, RuleInfo, Severity
from mageaudit.rules.common.call_order import CallOrder, classify_call_order, find_continuation
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.php_text import extract_paren_group, function_block, line_number_at

AROUND_METHOD_RE = re.compile(r"\bfunction\s+(around\w+)\s*\(")

TO_BEFORE = RuleInfo(
    rule_id="aroundToBeforePlugin",
    name="Around plugin should be a before plugin",
    short_description="The callable is invoked after all other code in the around method.",
    long_description=(
        "An around plugin whose only work happens before calling the original method "
        "adds a closure and an extra stack frame to every call. A before plugin does "
        "the same job for less."
    ),
)
TO_AFTER = RuleInfo(
    rule_id="aroundToAfterPlugin",
    name="Around plugin should be an after plugin",
    short_description="The callable is invoked before all other code in the around method.",
    long_description=(
        "An around plugin that calls the original method first and only then runs its "
        "own code behaves like an after plugin. Use an after plugin to keep the "
        "interceptor chain short."
    ),
)
OVERRIDE = RuleInfo(
    rule_id="overrideNotPlugin",
    name="Around plugin never calls the original method",
    short_description="The callable is never invoked: this is an override, not a plugin.",
    long_description=(
        "An around plugin that never calls the wrapped callable replaces the original "
        "method for every other plugin and for the core code. Use a preference or "
        "call the callable."
    ),
)


class AroundPlugins(FileProcessor):
    """Classify each ``around*`` method by where it calls its continuation."""

    rules = (TO_BEFORE, TO_AFTER, OVERRIDE)
    categories = (FileCategory.SOURCE,)

    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        text = source.text
        for match in AROUND_METHOD_RE.finditer(text):
            method = match.group(1)
            line = line_number_at(text, match.start())
            params = extract_paren_group(text, match.end() - 1)
            block = function_block(text, line)
            if params is None or block is None:
                continue

            continuation = find_continuation(params.inner, block.inner)
            order = classify_call_order(block.inner, continuation)
            if order is CallOrder.AFTER:
                self.add_finding(
                    source, line,
                    f"{method}() runs its code before calling ${continuation}(); use a before plugin.",
                    Severity.WARNING, TO_BEFORE.rule_id, end_line=block.end_line,
                )
            elif order is CallOrder.BEFORE:
                self.add_finding(
                    source, line,
                    f"{method}() calls ${continuation}() before its own code; use an after plugin.",
                    Severity.WARNING, TO_AFTER.rule_id, end_line=block.end_line,
                )
            elif order is CallOrder.OVERRIDE:
                self.add_finding(
                    source, line,
                    f"{method}() never calls the original method; this overrides instead of plugging in.",
                    Severity.ERROR, OVERRIDE.rule_id, end_line=block.end_line,
                )
