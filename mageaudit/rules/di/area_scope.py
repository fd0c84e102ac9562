"""Plugins and preferences in global di.xml that target one area only."""

from mageaudit.indexer.core import ClassifiedFiles
from mageaudit.rules.base import RuleInfo, Severity
from mageaudit.rules.common.di_config import DiConfigIndex, DiProcessor
from mageaudit.rules.common.di_scope import GLOBAL, detect_class_area
from mageaudit.symbols.index import SymbolIndex


class DiAreaScope(DiProcessor):
    rules = (RuleInfo(
        rule_id="magento.di.global-area-scope",
        name="DI Area Scope Misplacement",
        short_description="Detects plugins/preferences in global di.xml that should be in area-specific di.xml.",
        long_description=(
            "Plugins and preferences declared in the global etc/di.xml are loaded for every "
            "area (frontend, adminhtml, cron, REST API, etc.). When they target area-specific "
            "classes such as frontend blocks or admin controllers, they add overhead in areas "
            "where they are never used. Move them to etc/frontend/di.xml or "
            "etc/adminhtml/di.xml to reduce the DI compilation footprint."
        ),
    ),)

    def analyze(self, di_index: DiConfigIndex, files: ClassifiedFiles, index: SymbolIndex) -> None:
        # One finding per <type>, however many plugins it carries
        reported: set[tuple[str, str]] = set()
        for plugin in di_index.plugins:
            if plugin.scope != GLOBAL or (plugin.file_path, plugin.target) in reported:
                continue
            area = detect_class_area(plugin.target)
            if area is None:
                continue
            reported.add((plugin.file_path, plugin.target))
            self.add_finding(
                plugin.file_path, plugin.line,
                f"Plugin on area-specific class '{plugin.target}' is declared in global di.xml. "
                f"Consider moving to etc/{area}/di.xml.",
                Severity.NOTE,
                metadata={"type": plugin.target, "area": area},
            )

        for preference in di_index.preferences:
            if preference.scope != GLOBAL:
                continue
            area = detect_class_area(preference.for_type) or detect_class_area(preference.type_name)
            if area is None:
                continue
            self.add_finding(
                preference.file_path, preference.line,
                f"Preference for area-specific class '{preference.for_type}' is declared in global di.xml. "
                f"Consider moving to etc/{area}/di.xml.",
                Severity.NOTE,
                metadata={"type": preference.for_type, "area": area},
            )
