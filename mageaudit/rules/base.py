"""Base contracts for rule processors and their results."""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from mageaudit.config_runtime import DEFAULTS
from mageaudit.indexer.core import ClassifiedFiles, FileCategory, SkipRecord, SourceFile
from mageaudit.indexer.exceptions import MalformedMarkupError, UnreadableFileError
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.exit_codes import ExitCodes
from mageaudit.utils.logging import logger

MULTIPLE = "multiple"


class Severity(Enum):
    """Standardized severity levels."""

    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


@dataclass(frozen=True)
class Finding:
    """One rule violation at a file and line range."""

    file_path: str
    line: int
    message: str
    severity: Severity = Severity.WARNING
    end_line: int = 0
    rule_id: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        line = max(1, self.line or 1)
        object.__setattr__(self, "line", line)
        object.__setattr__(self, "end_line", max(line, self.end_line or line))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            "rule": self.rule_id,
            "file": self.file_path,
            "line": self.line,
            "end_line": self.end_line,
            "message": self.message,
            "severity": self.severity.value,
        }
        if self.metadata:
            result["metadata"] = dict(self.metadata)
        return result


@dataclass(frozen=True)
class RuleInfo:
    """Static description of one rule a processor can report."""

    rule_id: str
    name: str
    short_description: str = ""
    long_description: str = ""


@dataclass(frozen=True)
class RuleReport:
    """Findings of one rule, in discovery order."""

    rule_id: str
    name: str
    short_description: str
    long_description: str
    findings: tuple[Finding, ...] = ()

    def count(self, severity: Severity) -> int:
        return sum(1 for finding in self.findings if finding.severity is severity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "ruleId": self.rule_id,
            "name": self.name,
            "shortDescription": self.short_description,
            "longDescription": self.long_description,
            "files": [finding.to_dict() for finding in self.findings],
        }


@dataclass(frozen=True)
class ScanResult:
    """Aggregate of every RuleReport of one scan."""

    reports: tuple[RuleReport, ...] = ()
    skipped: tuple[SkipRecord, ...] = ()
    files_scanned: Mapping[str, int] = field(default_factory=dict)

    def _count(self, severity: Severity) -> int:
        return sum(report.count(severity) for report in self.reports)

    @property
    def error_count(self) -> int:
        return self._count(Severity.ERROR)

    @property
    def warning_count(self) -> int:
        return self._count(Severity.WARNING)

    @property
    def note_count(self) -> int:
        return self._count(Severity.NOTE)

    @property
    def findings(self) -> list[Finding]:
        return [finding for report in self.reports for finding in report.findings]

    @property
    def exit_code(self) -> int:
        return ExitCodes.from_counts(self.error_count, self.warning_count)

    def report_for(self, rule_id: str) -> RuleReport | None:
        for report in self.reports:
            if report.rule_id == rule_id:
                return report
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "reports": [report.to_dict() for report in self.reports],
            "skipped": [record.to_dict() for record in self.skipped],
            "files_scanned": dict(self.files_scanned),
            "summary": {
                "errors": self.error_count,
                "warnings": self.warning_count,
                "notes": self.note_count,
            },
        }


class Processor(ABC):
    """A self-contained anti-pattern detector.

    Subclasses declare the rules they can report and the file categories they
    read, then implement ``process``. One instance serves exactly one scan:
    findings accumulate privately and are read back through ``report``.

    The first entry of ``categories`` is the primary bucket; the orchestrator
    skips the processor when that bucket is empty or excluded.
    """

    rules: tuple[RuleInfo, ...] = ()
    categories: tuple[FileCategory, ...] = ()

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = config or DEFAULTS
        self._findings: dict[str, list[Finding]] = {rule.rule_id: [] for rule in self.rules}
        self.skipped: list[SkipRecord] = []

    @property
    def rule_id(self) -> str:
        return self.rules[0].rule_id

    @property
    def name(self) -> str:
        return self.rules[0].name

    @property
    def file_category(self) -> FileCategory | str:
        """The single category consumed, or ``"multiple"``."""
        if len(self.categories) == 1:
            return self.categories[0]
        return MULTIPLE

    @property
    def found_count(self) -> int:
        return sum(len(findings) for findings in self._findings.values())

    @abstractmethod
    def process(self, files: ClassifiedFiles, index: SymbolIndex) -> None:
        """Scan the classified files and accumulate findings."""

    def add_finding(self, source: SourceFile | str, line: int, message: str,
                    severity: Severity | None = None, rule_id: str | None = None,
                    end_line: int = 0, metadata: Mapping[str, Any] | None = None) -> Finding:
        rule_id = rule_id or self.rule_id
        if rule_id not in self._findings:
            raise KeyError(f"{type(self).__name__} does not declare rule {rule_id}")
        path = source.posix_path if isinstance(source, SourceFile) else str(source)
        finding = Finding(
            file_path=path,
            line=line,
            end_line=end_line,
            message=message,
            severity=severity or Severity.WARNING,
            rule_id=rule_id,
            metadata=metadata or {},
        )
        self._findings[rule_id].append(finding)
        return finding

    def findings_for(self, rule_id: str) -> list[Finding]:
        return list(self._findings.get(rule_id, ()))

    def report(self) -> list["RuleReport"]:
        """One RuleReport per declared rule that produced findings."""
        reports = []
        for rule in self.rules:
            findings = self._findings[rule.rule_id]
            if findings:
                reports.append(RuleReport(
                    rule_id=rule.rule_id,
                    name=rule.name,
                    short_description=rule.short_description,
                    long_description=rule.long_description,
                    findings=tuple(findings),
                ))
        return reports

    def record_skip(self, path: str | None, reason: str) -> None:
        self.skipped.append(SkipRecord(path=path, reason=reason, rule_id=self.rule_id))

    @contextmanager
    def guard(self, source: SourceFile) -> Iterator[None]:
        """Run one file's work; failures skip the file instead of the scan."""
        try:
            yield
        except (UnreadableFileError, MalformedMarkupError) as e:
            logger.warning(f"[{self.rule_id}] Skipping {source.path}: {e.message}")
            self.record_skip(str(source.path), e.message)
        except Exception as e:
            logger.warning(f"[{self.rule_id}] Failed on {source.path}: {type(e).__name__}: {e}")
            self.record_skip(str(source.path), f"{type(e).__name__}: {e}")


class FileProcessor(Processor):
    """Processor that looks at each file of its primary bucket independently."""

    def process(self, files: ClassifiedFiles, index: SymbolIndex) -> None:
        for source in files[self.categories[0]]:
            with self.guard(source):
                self.process_file(source, index)

    @abstractmethod
    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        """Inspect a single file."""
