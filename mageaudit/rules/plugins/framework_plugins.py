"""Plugins declared on Magento framework classes."""

from mageaudit.indexer.core import ClassifiedFiles
from mageaudit.rules.base import RuleInfo, Severity
from mageaudit.rules.common.di_config import DiConfigIndex, DiProcessor
from mageaudit.symbols.index import SymbolIndex

FRAMEWORK_NAMESPACE = "Magento\\Framework\\"


class MagentoFrameworkPlugin(DiProcessor):
    rules = (RuleInfo(
        rule_id="magentoFrameworkPlugin",
        name="Plugin on Magento framework class",
        short_description="A plugin intercepts a class of the Magento framework.",
        long_description=(
            "Framework classes are used by every request and every area. Intercepting "
            "them adds the plugin chain to code paths far beyond the module's own "
            "feature, and their behaviour is relied on by the whole platform."
        ),
    ),)

    def analyze(self, di_index: DiConfigIndex, files: ClassifiedFiles, index: SymbolIndex) -> None:
        for plugin in di_index.plugins:
            if plugin.disabled or not plugin.target.startswith(FRAMEWORK_NAMESPACE):
                continue
            self.add_finding(
                plugin.file_path, plugin.line,
                f"Class '{plugin.target}' is a core Magento framework class and should not be plugged "
                f"(plugin '{plugin.name}').",
                Severity.WARNING,
                metadata={"target": plugin.target, "plugin": plugin.plugin_class},
            )
