"""Modules shipped in the codebase but disabled in ``app/etc/config.php``."""

import re
from pathlib import Path

from mageaudit.indexer.core import ClassifiedFiles, FileCategory, SourceFile
from mageaudit.rules.base import Processor, RuleInfo, Severity
from mageaudit.rules.common.xml import load_xml
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.logging import logger

MODULE_FILENAME = "module.xml"
CONFIG_RELATIVE_PATH = Path("app") / "etc" / "config.php"
MODULE_STATUS_RE = re.compile(r"['\"](\w+_\w+)['\"]\s*=>\s*(\d+)")


def parse_module_statuses(text: str) -> dict[str, int]:
    """``'Vendor_Module' => 0|1`` entries of a config.php ``modules`` array."""
    start = re.search(r"['\"]modules['\"]\s*=>\s*(?:\[|array\s*\()", text)
    if start:
        text = text[start.end():]
    return {name: int(status) for name, status in MODULE_STATUS_RE.findall(text)}


def find_config_php(start: Path) -> Path | None:
    """Nearest ``app/etc/config.php`` in ``start`` or one of its ancestors."""
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_RELATIVE_PATH
        if candidate.is_file():
            return candidate
    return None


class UnusedModules(Processor):
    rules = (RuleInfo(
        rule_id="unusedModules",
        name="Unused Modules",
        short_description="Modules present in codebase but disabled in configuration.",
        long_description=(
            "These modules are present in the codebase but are disabled in app/etc/config.php. "
            "Disabled modules do not load but still consume storage and may contain security "
            "vulnerabilities. Consider removing them."
        ),
    ),)
    categories = (FileCategory.CONFIG_XML,)

    def process(self, files: ClassifiedFiles, index: SymbolIndex) -> None:
        module_files = [source for source in files[FileCategory.CONFIG_XML] if source.name == MODULE_FILENAME]
        if not module_files:
            return

        statuses: dict[Path, dict[str, int]] = {}
        for source in module_files:
            config_path = find_config_php(Path(source.path).resolve().parent)
            if config_path is None:
                logger.debug(f"No app/etc/config.php above {source.path}, module status unknown")
                continue
            if config_path not in statuses:
                try:
                    statuses[config_path] = parse_module_statuses(config_path.read_text(encoding="utf-8", errors="replace"))
                except OSError as e:
                    logger.warning(f"Could not read {config_path}: {e}")
                    self.record_skip(str(config_path), f"unreadable: {e}")
                    statuses[config_path] = {}

            with self.guard(source):
                self._check_module(source, statuses[config_path])

    def _check_module(self, source: SourceFile, modules: dict[str, int]) -> None:
        root = load_xml(source)
        module = root.find("module")
        name = module.get("name") if module is not None else None
        if not name or modules.get(name) != 0:
            return
        self.add_finding(
            source, 1,
            f"Module '{name}' is disabled in app/etc/config.php but still present in codebase.",
            Severity.NOTE,
            metadata={"module": name},
        )
