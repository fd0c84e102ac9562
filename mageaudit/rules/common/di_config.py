"""Parsed view of every dependency-configuration (di.xml) file of a scan."""

from abc import abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field

from mageaudit.indexer.core import ClassifiedFiles, FileCategory, SkipRecord, SourceFile
from mageaudit.indexer.exceptions import MalformedMarkupError, UnreadableFileError
from mageaudit.rules.base import Processor
from mageaudit.symbols.index import SymbolIndex
from mageaudit.utils.logging import logger
from mageaudit.utils.php_text import get_line_number

from .di_scope import get_scope
from .xml import argument_value, is_disabled, iter_types, load_xml

COMMAND_LIST_TYPE = "Magento\\Framework\\Console\\CommandList"
XSI_TYPE = "{http://www.w3.org/2001/XMLSchema-instance}type"


@dataclass(frozen=True)
class DiArgument:
    """``<type name=T><arguments><argument name=A>value</argument>``."""

    file_path: str
    type_name: str
    name: str
    value: str
    xsi_type: str = ""

    @property
    def is_proxy(self) -> bool:
        return self.value.endswith("\\Proxy")


@dataclass(frozen=True)
class PluginDeclaration:
    file_path: str
    scope: str
    target: str
    name: str
    plugin_class: str
    disabled: bool
    line: int


@dataclass(frozen=True)
class Preference:
    file_path: str
    scope: str
    for_type: str
    type_name: str
    line: int


@dataclass(frozen=True)
class CommandEntry:
    file_path: str
    command_class: str
    line: int


@dataclass
class DiConfigIndex:
    """Plugins, preferences, arguments and console commands of a set of di.xml files."""

    arguments: dict[tuple[str, str], list[DiArgument]] = field(default_factory=dict)
    plugins: list[PluginDeclaration] = field(default_factory=list)
    preferences: list[Preference] = field(default_factory=list)
    commands: list[CommandEntry] = field(default_factory=list)
    files: list[str] = field(default_factory=list)
    skipped: list[SkipRecord] = field(default_factory=list)

    @classmethod
    def build(cls, di_files: Iterable[SourceFile], rule_id: str | None = None) -> "DiConfigIndex":
        """Parse each file; malformed or unreadable files are skipped and recorded."""
        index = cls()
        for source in di_files:
            try:
                root = load_xml(source)
                text = source.text
            except (MalformedMarkupError, UnreadableFileError) as e:
                logger.warning(f"Skipping {source.path}: {e.message}")
                index.skipped.append(SkipRecord(path=str(source.path), reason=e.message, rule_id=rule_id))
                continue
            index._add_file(source.posix_path, root, text)
        return index

    def _add_file(self, path: str, root, text: str) -> None:
        self.files.append(path)
        scope = get_scope(path)

        for type_element in iter_types(root):
            type_name = type_element.get("name").strip().lstrip("\\")
            for plugin in type_element.iter("plugin"):
                self.plugins.append(PluginDeclaration(
                    file_path=path,
                    scope=scope,
                    target=type_name,
                    name=plugin.get("name", ""),
                    plugin_class=(plugin.get("type") or "").strip().lstrip("\\"),
                    disabled=is_disabled(plugin),
                    line=get_line_number(text, type_name) or 1,
                ))
            for argument in type_element.iter("argument"):
                name = argument.get("name")
                if not name:
                    continue
                self.arguments.setdefault((type_name, name), []).append(DiArgument(
                    file_path=path,
                    type_name=type_name,
                    name=name,
                    value=argument_value(argument),
                    xsi_type=argument.get(XSI_TYPE, ""),
                ))
            if type_name == COMMAND_LIST_TYPE:
                for item in type_element.iter("item"):
                    command = argument_value(item)
                    if command:
                        self.commands.append(CommandEntry(
                            file_path=path,
                            command_class=command,
                            line=get_line_number(text, command) or 1,
                        ))

        for preference in root.iter("preference"):
            for_type = (preference.get("for") or "").strip().lstrip("\\")
            if not for_type:
                continue
            self.preferences.append(Preference(
                file_path=path,
                scope=scope,
                for_type=for_type,
                type_name=(preference.get("type") or "").strip().lstrip("\\"),
                line=get_line_number(text, for_type) or 1,
            ))

    def arguments_for(self, type_name: str, argument: str, paths: Iterable[str] | None = None) -> list[DiArgument]:
        """Argument overrides for a type, optionally limited to some files."""
        found = self.arguments.get((type_name.lstrip("\\"), argument.lstrip("$")), [])
        if paths is None:
            return list(found)
        allowed = set(paths)
        return [entry for entry in found if entry.file_path in allowed]

    def has_proxy(self, type_name: str, argument: str, paths: Iterable[str] | None = None) -> bool:
        return any(entry.is_proxy for entry in self.arguments_for(type_name, argument, paths))

    def proxies_for_type(self, type_name: str) -> list[DiArgument]:
        type_name = type_name.lstrip("\\")
        return [
            entry
            for (declared, _), entries in self.arguments.items()
            if declared == type_name
            for entry in entries
            if entry.is_proxy
        ]


class DiProcessor(Processor):
    """Processor working on the parsed di.xml files of the scan."""

    categories = (FileCategory.DEPENDENCY_XML,)

    def process(self, files: ClassifiedFiles, index: SymbolIndex) -> None:
        di_index = DiConfigIndex.build(files[FileCategory.DEPENDENCY_XML], self.rule_id)
        self.skipped.extend(di_index.skipped)
        self.analyze(di_index, files, index)

    @abstractmethod
    def analyze(self, di_index: DiConfigIndex, files: ClassifiedFiles, index: SymbolIndex) -> None:
        """Inspect the parsed configuration."""
