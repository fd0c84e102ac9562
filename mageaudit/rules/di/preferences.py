"""Several preferences for the same type in the same area."""

from mageaudit.indexer.core import ClassifiedFiles
from mageaudit.rules.base import RuleInfo, Severity
from mageaudit.rules.common.di_config import DiConfigIndex, DiProcessor, Preference
from mageaudit.symbols.index import SymbolIndex


class Preferences(DiProcessor):
    """Only the last preference by module load order wins; the rest are dead or fragile."""

    rules = (RuleInfo(
        rule_id="duplicatePreferences",
        name="Duplicate Preferences",
        short_description="Multiple preferences found for the same interface/class.",
        long_description=(
            "Multiple preferences found for the same interface/class. This can lead to "
            "unexpected behavior as only the last one will be applied, depending on module "
            "load sequence. Remove duplicate preferences or check that sequence is declared "
            "correctly in module.xml."
        ),
    ),)

    def analyze(self, di_index: DiConfigIndex, files: ClassifiedFiles, index: SymbolIndex) -> None:
        grouped: dict[tuple[str, str], list[Preference]] = {}
        for preference in di_index.preferences:
            if not preference.type_name:
                continue
            grouped.setdefault((preference.for_type, preference.scope), []).append(preference)

        for (interface, _scope), preferences in grouped.items():
            if len(preferences) <= 1:
                continue
            reported: set[str] = set()
            for preference in preferences:
                if preference.file_path in reported:
                    continue
                reported.add(preference.file_path)
                self.add_finding(
                    preference.file_path, preference.line,
                    f"Multiple preferences found for '{interface}'. This preference uses "
                    f"'{preference.type_name}'. Total preferences: {len(preferences)}",
                    Severity.ERROR,
                    metadata={"interface": interface},
                )
