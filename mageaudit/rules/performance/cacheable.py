"""Layout blocks marked ``cacheable="false"``."""

from mageaudit.indexer.core import FileCategory, SourceFile
from mageaudit.rules.base import FileProcessor, RuleInfo, Severity
from mageaudit.rules.common.xml import load_xml
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.php_text import get_line_number

# Block names that legitimately carry per-customer content
ALLOWED_AREAS = ("sales", "customer", "gift", "message")


class Cacheable(FileProcessor):
    """A single uncacheable block makes the whole page bypass the full page cache."""

    rules = (RuleInfo(
        rule_id="useCacheable",
        name='Use of cacheable="false"',
        short_description='Block with cacheable="false" found in layout XML.',
        long_description=(
            'Using cacheable="false" is not recommended for blocks. This attribute prevents the '
            "block from being cached and usually makes the whole page uncacheable. Only use it for "
            "dynamic, user-specific data; otherwise prefer customer sections (private content) or "
            "ESI (Edge Side Includes)."
        ),
    ),)
    categories = (FileCategory.CONFIG_XML,)

    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        root = load_xml(source)
        for block in root.iter("block"):
            if (block.get("cacheable") or "").strip().lower() != "false":
                continue
            name = block.get("name", "")
            if any(area in name.lower() for area in ALLOWED_AREAS):
                continue
            line = (get_line_number(source.text, f'"{name}"') if name else None) or 1
            self.add_finding(
                source, line,
                f"Block '{name}' uses cacheable=\"false\", which can impact performance. "
                f"Consider using customer sections or ESI instead.",
                Severity.NOTE,
                metadata={"block": name},
            )
