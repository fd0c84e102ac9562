"""Raw SQL statements written in PHP strings."""

import re
from dataclasses import dataclass

from mageaudit.indexer.core import FileCategory, SourceFile
from mageaudit.rules.base import FileProcessor, RuleInfo, Severity
from mageaudit.rules.common.modules import is_setup_directory
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.php_text import line_number_at, remove_comments


@dataclass(frozen=True)
class SqlPattern:
    keyword: str
    pattern: re.Pattern
    severity: Severity
    rule: RuleInfo
    recommendation: str


SQL_PATTERNS: tuple[SqlPattern, ...] = (
    SqlPattern(
        keyword="SELECT",
        pattern=re.compile(r"SELECT\s+.*?\s+FROM", re.IGNORECASE | re.DOTALL),
        severity=Severity.ERROR,
        rule=RuleInfo(
            rule_id="magento.code.hard-written-sql-select",
            name="Hard Written SQL SELECT",
            short_description="SELECT queries must be avoided",
            long_description=(
                "SELECT queries must be avoided. Use the Magento Framework methods instead or a "
                "custom repository with getList() and/or getById() methods. Raw SQL queries bypass "
                "the data abstraction layer and its events."
            ),
        ),
        recommendation="Use a repository with getList() or getById() methods, or a collection with addFieldToFilter().",
    ),
    SqlPattern(
        keyword="DELETE",
        pattern=re.compile(r"DELETE\s+.*?\s+FROM", re.IGNORECASE | re.DOTALL),
        severity=Severity.ERROR,
        rule=RuleInfo(
            rule_id="magento.code.hard-written-sql-delete",
            name="Hard Written SQL DELETE",
            short_description="DELETE queries must be avoided",
            long_description=(
                "DELETE queries must be avoided. Use a repository with delete() and/or deleteById() "
                "methods. Raw SQL deletion bypasses the event system and can break referential integrity."
            ),
        ),
        recommendation="Use a repository with delete() or deleteById() methods.",
    ),
    SqlPattern(
        keyword="INSERT",
        pattern=re.compile(r"INSERT\s+.*?\s+INTO", re.IGNORECASE | re.DOTALL),
        severity=Severity.WARNING,
        rule=RuleInfo(
            rule_id="magento.code.hard-written-sql-insert",
            name="Hard Written SQL INSERT",
            short_description="INSERT queries should be avoided",
            long_description=(
                "INSERT queries should be avoided. Use a repository with a save() method. While it can "
                "be faster for large amounts of data, it bypasses validation and the event system."
            ),
        ),
        recommendation="Use a repository with save() method or the resource model's save() method.",
    ),
    SqlPattern(
        keyword="UPDATE",
        pattern=re.compile(r"UPDATE\s+.*?\s+SET", re.IGNORECASE | re.DOTALL),
        severity=Severity.WARNING,
        rule=RuleInfo(
            rule_id="magento.code.hard-written-sql-update",
            name="Hard Written SQL UPDATE",
            short_description="UPDATE queries should be avoided",
            long_description=(
                "UPDATE queries should be avoided. Use a repository with a save() method. Raw updates "
                "can lose data and bypass the event system."
            ),
        ),
        recommendation="Use a repository with save() method or the resource model's save() method.",
    ),
    SqlPattern(
        keyword="JOIN",
        pattern=re.compile(r"\s+JOIN\s+.*?\s+ON", re.IGNORECASE | re.DOTALL),
        severity=Severity.NOTE,
        rule=RuleInfo(
            rule_id="magento.code.hard-written-sql-join",
            name="Hard Written SQL JOIN",
            short_description="JOIN queries should be avoided",
            long_description=(
                "JOIN queries should be avoided. Use collection join() methods or addFieldToFilter() "
                "so the query stays inside the database abstraction."
            ),
        ),
        recommendation="Use collection join() methods or addFieldToFilter() with proper table relations.",
    ),
)


def truncate_sql(sql: str, length: int = 80) -> str:
    sql = " ".join(sql.split())
    if len(sql) > length:
        return sql[:length - 3] + "..."
    return sql


class HardWrittenSQL(FileProcessor):
    """SELECT/DELETE/INSERT/UPDATE/JOIN statements outside Setup scripts."""

    rules = tuple(sql.rule for sql in SQL_PATTERNS)
    categories = (FileCategory.SOURCE,)

    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        if is_setup_directory(source.posix_path):
            return
        snippet_length = self.config.get("rules", {}).get("sql_snippet_length", 80)
        # Line breaks survive comment removal, so offsets map to real lines
        cleaned = remove_comments(source.text)
        for sql in SQL_PATTERNS:
            for match in sql.pattern.finditer(cleaned):
                text = match.group(0)
                start = line_number_at(cleaned, match.start() + len(text) - len(text.lstrip()))
                self.add_finding(
                    source, start,
                    f'Hard-written {sql.keyword} query detected: "{truncate_sql(text, snippet_length)}". '
                    f"{sql.recommendation}",
                    sql.severity,
                    rule_id=sql.rule.rule_id,
                    end_line=line_number_at(cleaned, match.end()),
                )
