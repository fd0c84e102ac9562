"""Plugins that intercept a class of their own module."""

from mageaudit.indexer.core import ClassifiedFiles
from mageaudit.rules.base import RuleInfo, Severity
from mageaudit.rules.common.di_config import DiConfigIndex, DiProcessor
from mageaudit.rules.common.modules import is_same_module
from mageaudit.symbols.index import SymbolIndex


class SameModulePlugins(DiProcessor):
    """A module owning both classes can change the target directly."""

    rules = (RuleInfo(
        rule_id="sameModulePlugin",
        name="Plugin on a class of the same module",
        short_description="A plugin intercepts a class declared in its own module.",
        long_description=(
            "When the plugin and the intercepted class belong to the same Vendor\\Module, "
            "the behaviour can be written in the class itself. The plugin only adds "
            "interceptor generation and runtime overhead."
        ),
    ),)

    def analyze(self, di_index: DiConfigIndex, files: ClassifiedFiles, index: SymbolIndex) -> None:
        for plugin in di_index.plugins:
            if plugin.disabled or not plugin.plugin_class:
                continue
            if is_same_module(plugin.plugin_class, plugin.target):
                self.add_finding(
                    plugin.file_path, plugin.line,
                    f"Class '{plugin.plugin_class}' is plugging {plugin.target} that is in the same module.",
                    Severity.WARNING,
                    metadata={"target": plugin.target, "plugin": plugin.plugin_class},
                )
