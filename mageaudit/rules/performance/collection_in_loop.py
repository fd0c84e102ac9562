"""Entity loading inside loops (N+1 queries)."""

import re

from mageaudit.indexer.core import FileCategory, SourceFile
from mageaudit.rules.base import FileProcessor, RuleInfo, Severity
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.php_text import line_number_at, locate_brace_block, remove_comments

LOAD_PATTERNS: dict[str, str] = {
    "->load(": "Model ->load() call inside loop",
    "->getFirstItem()": "Collection ->getFirstItem() call inside loop",
    "->getById(": "Repository ->getById() call inside loop",
    "::load(": "Static Model::load() call inside loop",
    "::loadFromDb(": "Static ::loadFromDb() call inside loop",
}

LOOP_RE = re.compile(r"\b(foreach|for|while|do)\s*[({]")


class CollectionInLoop(FileProcessor):
    """One finding per load pattern per loop body; nested loops report again."""

    rules = (RuleInfo(
        rule_id="magento.performance.collection-in-loop",
        name="Collection/Model Loading in Loop",
        short_description="Model or repository loading inside a loop.",
        long_description=(
            "Loading models or fetching single entities inside loops causes N+1 query problems. "
            "Each iteration executes a separate database query. Batch-load the entities before "
            "the loop with getList() and search criteria, or a collection filtered with "
            "addFieldToFilter()."
        ),
    ),)
    categories = (FileCategory.SOURCE,)

    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        cleaned = remove_comments(source.text)
        for loop in LOOP_RE.finditer(cleaned):
            block = locate_brace_block(cleaned, loop.start())
            if block is None:
                continue
            for pattern, description in LOAD_PATTERNS.items():
                position = block.inner.find(pattern)
                if position == -1:
                    continue
                self.add_finding(
                    source, line_number_at(cleaned, block.start + 1 + position),
                    f"{description}. This causes N+1 queries. Load all needed entities before "
                    f"the loop using getList() or a filtered collection.",
                    Severity.WARNING,
                )
