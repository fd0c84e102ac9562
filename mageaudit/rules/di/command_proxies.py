"""Console commands should receive their dependencies through proxies."""

from mageaudit.indexer.core import ClassifiedFiles, FileCategory
from mageaudit.rules.base import RuleInfo, Severity
from mageaudit.rules.common.di_config import DiConfigIndex, DiProcessor
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.logging import logger


class NoProxyInCommands(DiProcessor):
    """Every command registered in CommandList is built on each ``bin/magento`` call.

    Dependencies of a command class are therefore constructed even when
    another command runs; each non-factory dependency without a proxy
    argument is reported on the di.xml line that registers the command.
    """

    rules = (RuleInfo(
        rule_id="noProxyUsedInCommands",
        name="No Proxy Used In Commands",
        short_description="Console command dependencies injected without proxy.",
        long_description=(
            "Every console command registered through Magento\\Framework\\Console\\CommandList "
            "is instantiated each time bin/magento runs, whichever command is requested. Their "
            "constructor dependencies are instantiated as well. Inject them through proxies "
            "(argument with xsi:type=\"object\" ending in \\Proxy) so they are only built when "
            "the command actually executes."
        ),
    ),)
    categories = (FileCategory.DEPENDENCY_XML, FileCategory.SOURCE)

    def analyze(self, di_index: DiConfigIndex, files: ClassifiedFiles, index: SymbolIndex) -> None:
        seen: set[str] = set()
        for command in di_index.commands:
            if command.command_class in seen:
                continue
            seen.add(command.command_class)

            symbols = index.symbols_for_class(command.command_class)
            if symbols is None:
                logger.debug(f"Command {command.command_class} is not declared in the scanned sources")
                continue

            proxies = {entry.value for entry in di_index.proxies_for_type(command.command_class)}
            missing = []
            for parameter, resolution in symbols.consolidated.items():
                if resolution.is_unresolved:
                    continue
                type_name = resolution.value.lstrip("\\")
                if "Factory" in type_name:
                    continue
                if di_index.has_proxy(command.command_class, parameter) or f"{type_name}\\Proxy" in proxies:
                    continue
                missing.append((parameter, type_name))

            for parameter, type_name in missing:
                self.add_finding(
                    command.file_path, command.line,
                    f"Command '{command.command_class}' injects '{type_name}' (parameter ${parameter}) "
                    f"without a proxy. Commands are instantiated on every CLI call; use "
                    f"'{type_name}\\Proxy' instead.",
                    Severity.ERROR,
                    metadata={
                        "diFile": command.file_path,
                        "type": command.command_class,
                        "argument": parameter,
                        "proxy": f"{type_name}\\Proxy",
                    },
                )
