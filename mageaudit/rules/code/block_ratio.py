"""Modules whose classes are mostly Blocks rather than ViewModels."""

from mageaudit.indexer.core import ClassifiedFiles, FileCategory
from mageaudit.rules.base import Processor, RuleInfo, Severity
from mageaudit.rules.common.modules import group_files_by_module, is_block_file, module_root
from mageaudit.symbols.index import SymbolIndex


def block_ratio(paths: list[str]) -> tuple[int, float]:
    """(Block count, Block share) of a module's source files."""
    if not paths:
        return 0, 0.0
    blocks = sum(1 for path in paths if is_block_file(path))
    return blocks, blocks / len(paths)


class BlockViewModelRatio(Processor):
    rules = (RuleInfo(
        rule_id="blockViewModelRatio",
        name="Block vs ViewModel Ratio",
        short_description="Module has a high ratio of Block classes compared to ViewModels.",
        long_description=(
            "A high ratio of Block classes (> 50%) may indicate poor code organization. In modern "
            "Magento 2, ViewModels should be preferred for presentation logic as they provide "
            "better separation of concerns and testability. Consider refactoring Block logic into "
            "ViewModels."
        ),
    ),)
    categories = (FileCategory.SOURCE,)

    def process(self, files: ClassifiedFiles, index: SymbolIndex) -> None:
        threshold = self.config.get("rules", {}).get("block_ratio_threshold", 0.5)
        grouped = group_files_by_module(source.posix_path for source in files[FileCategory.SOURCE])

        for module, paths in grouped.items():
            blocks, ratio = block_ratio(paths)
            if ratio <= threshold:
                continue
            location = module_root(paths[0]) or next(path for path in paths if is_block_file(path))
            self.add_finding(
                location, 1,
                f"Module '{module}' has {blocks} Block classes out of {len(paths)} total classes "
                f"({round(ratio * 100, 1)}%). Consider using ViewModels for presentation logic.",
                Severity.WARNING,
                metadata={
                    "module": module,
                    "ratio": round(ratio, 2),
                    "blockCount": blocks,
                    "totalCount": len(paths),
                },
            )
