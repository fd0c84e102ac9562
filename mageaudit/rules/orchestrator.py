"""Runs every processor of the catalog over one scan.

The orchestrator:
1. Classifies the files once
2. Builds the SymbolIndex once, with a build context owned by this scan
3. Runs each processor whose primary file category is present, in parallel
4. Collects their reports into a ScanResult, in catalog order
"""

from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any

from mageaudit.config_runtime import load_runtime_config
from mageaudit.indexer.core import ClassifiedFiles, FileCategory, SkipRecord, classify
from mageaudit.symbols.hierarchy import BuildContext
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.logging import logger

from .base import Processor, RuleReport, ScanResult
from .registry import discover_processors


def _dedupe_skips(records: Iterable[SkipRecord]) -> tuple[SkipRecord, ...]:
    """One record per path, first reason wins; path-less records are all kept."""
    seen: set[str] = set()
    result = []
    for record in records:
        if record.path is not None:
            if record.path in seen:
                continue
            seen.add(record.path)
        result.append(record)
    return tuple(result)


class RulesOrchestrator:
    """Single-scan driver over the processor catalog."""

    def __init__(self, paths: str | Path | Sequence[str | Path],
                 exclude_patterns: list[str] | None = None,
                 exclude_extensions: list[str] | None = None,
                 config: dict[str, Any] | None = None,
                 processors: Iterable[type[Processor]] | None = None):
        """Initialize the orchestrator.

        Args:
            paths: Root directory, single file or list of either
            exclude_patterns: Glob-like path patterns to leave out
            exclude_extensions: Extensions to leave out
            config: Runtime configuration; loaded from the first root when omitted
            processors: Processor classes to run; the whole catalog when omitted
        """
        self.paths = paths
        self.exclude_patterns = exclude_patterns
        self.exclude_extensions = exclude_extensions
        if config is None:
            first = Path(paths) if isinstance(paths, (str, Path)) else Path(next(iter(paths), "."))
            config = load_runtime_config(first if first.is_dir() else first.parent)
        self.config = config
        self.processors = tuple(processors) if processors is not None else discover_processors()

    @property
    def max_workers(self) -> int:
        return max(1, int(self.config.get("limits", {}).get("max_workers", 4)))

    def run(self) -> ScanResult:
        """Classify, index, run every applicable processor and aggregate.

        Raises:
            ScanPathError: a root path is missing or unreadable
        """
        files = classify(self.paths, self.exclude_patterns, self.exclude_extensions, self.config)
        index = SymbolIndex.build(files[FileCategory.SOURCE], self.max_workers, BuildContext())
        return self.run_on(files, index)

    def run_on(self, files: ClassifiedFiles, index: SymbolIndex) -> ScanResult:
        """Run the processors over already classified files and a built index."""
        instances = []
        for processor_class in self.processors:
            primary = processor_class.categories[0] if processor_class.categories else None
            if primary is None or not files.has(primary):
                logger.debug(f"Skipping processor {processor_class.__name__} (no {primary.value if primary else 'input'} files)")
                continue
            instances.append(processor_class(self.config))

        skipped: list[SkipRecord] = list(files.skipped) + list(index.skipped)
        reports_by_processor: dict[int, list[RuleReport]] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(self._run_processor, processor, files, index): position
                for position, processor in enumerate(instances)
            }
            for future in as_completed(futures):
                position = futures[future]
                processor = instances[position]
                try:
                    future.result()
                except Exception as e:
                    logger.warning(f"Processor {type(processor).__name__} failed: {type(e).__name__}: {e}")
                    skipped.append(SkipRecord(path=None, reason=f"{type(e).__name__}: {e}",
                                              rule_id=processor.rule_id))
                # Whatever a failed processor found before failing is kept
                reports_by_processor[position] = processor.report()

        for processor in instances:
            skipped.extend(processor.skipped)

        reports = tuple(
            report
            for position in range(len(instances))
            for report in reports_by_processor.get(position, [])
        )
        result = ScanResult(reports=reports, skipped=_dedupe_skips(skipped), files_scanned=files.counts())
        logger.info(
            f"Scan complete: {len(files)} files, {result.error_count} errors, "
            f"{result.warning_count} warnings, {result.note_count} notes, {len(result.skipped)} skipped"
        )
        return result

    @staticmethod
    def _run_processor(processor: Processor, files: ClassifiedFiles, index: SymbolIndex) -> None:
        logger.debug(f"Running processor {type(processor).__name__}")
        processor.process(files, index)
        logger.debug(f"{type(processor).__name__}: {processor.found_count} findings")

    def get_rule_stats(self) -> dict[str, Any]:
        """Get statistics about the processors this orchestrator runs."""
        by_category: dict[str, int] = {}
        for processor in self.processors:
            key = processor.categories[0].value if len(processor.categories) == 1 else "multiple"
            by_category[key] = by_category.get(key, 0) + 1
        return {
            "total_processors": len(self.processors),
            "total_rules": sum(len(processor.rules) for processor in self.processors),
            "by_category": by_category,
            "rule_ids": [rule.rule_id for processor in self.processors for rule in processor.rules],
        }


def run_scan(paths: str | Path | Sequence[str | Path],
             exclude_patterns: list[str] | None = None,
             exclude_extensions: list[str] | None = None,
             config: dict[str, Any] | None = None) -> ScanResult:
    """Run the whole catalog over a path.

    Returns:
        ScanResult for the out-of-scope serializer and exit-status logic
    """
    return RulesOrchestrator(paths, exclude_patterns, exclude_extensions, config).run()
