"""Concrete classes injected where a factory, interface or repository belongs."""

from mageaudit.indexer.core import FileCategory, SourceFile
from mageaudit.indexer.exceptions import SubtypesNotFoundError
from mageaudit.rules.base import FileProcessor, RuleInfo, Severity
from mageaudit.rules.di.heavy_proxies import KNOWN_HEAVY_CLASSES
from mageaudit.symbols.constructors import BASIC_TYPES
from mageaudit.symbols.index import FileSymbols, SymbolIndex
from mageaudit.symbols.types import (
    is_collection_type,
    is_non_magento_library,
    is_repository,
    is_resource_model,
    matches_substring,
    matches_suffix,
    repository_interface,
    short_name,
)
from mageaudit.utils.php_text import get_line_number

COLLECTION = RuleInfo(
    rule_id="collectionMustUseFactory",
    name="Collection Must Use Factory",
    short_description="Collections must not be injected directly",
    long_description=(
        "A collection must not be injected in constructor as a specific class. When a "
        "collection is needed, a factory of it must be injected and used. This prevents the "
        "collection from being instantiated at class construction time."
    ),
)
COLLECTION_WITH_CHILDREN = RuleInfo(
    rule_id="collectionWithChildrenMustUseFactory",
    name="Collection With Children Must Use Factory",
    short_description="Collections with children must not be injected directly",
    long_description=(
        "A collection must not be injected in constructor as a specific class. This "
        "collection has child classes in the codebase, so the change cannot be applied "
        "mechanically; every child class needs reviewing as well."
    ),
)
REPOSITORY = RuleInfo(
    rule_id="repositoryMustUseInterface",
    name="Repository Must Use Interface",
    short_description="Repositories must use interface injection",
    long_description=(
        "A repository must not be injected in constructor as a specific class. Inject its "
        "service contract interface so preferences apply."
    ),
)
REPOSITORY_WITH_CHILDREN = RuleInfo(
    rule_id="repositoryWithChildrenMustUseInterface",
    name="Repository With Children Must Use Interface",
    short_description="Repositories with children must use interface injection",
    long_description=(
        "A repository must not be injected in constructor as a specific class. This "
        "repository has child classes in the codebase, so the change cannot be applied "
        "mechanically; every child class needs reviewing as well."
    ),
)
MODEL_WITH_INTERFACE = RuleInfo(
    rule_id="modelUseApiInterface",
    name="Model Should Use API Interface",
    short_description="Models with API interfaces should inject the interface",
    long_description=(
        "When a model implements an API interface, the interface should be injected instead "
        "of the concrete class. Otherwise preferences declared for the interface are ignored."
    ),
)
RESOURCE_MODEL = RuleInfo(
    rule_id="noResourceModelInjection",
    name="Resource Model Should Not Be Injected",
    short_description="Resource models should use repository pattern",
    long_description=(
        "A resource model must not be injected in constructor. Resource models represent the "
        "database layer and should be abstracted behind repositories."
    ),
)
GENERIC_CLASS = RuleInfo(
    rule_id="specificClassInjection",
    name="Specific Class Injection",
    short_description="Consider using factory, builder, or interface",
    long_description=(
        "A class should not be injected in constructor as a specific class. In most cases a "
        "factory, a builder, or an interface should be used. This heuristic cannot be fully "
        "accurate, please verify manually."
    ),
)

# Legitimate concrete injections
IGNORED_CLASSES: frozenset[str] = frozenset({
    "Magento\\Eav\\Model\\Validator\\Attribute\\Backend",
    "Magento\\Eav\\Model\\Config",
    "Magento\\Eav\\Model\\Entity\\Attribute\\Config",
    "Magento\\Cms\\Model\\Page",
    "Magento\\Theme\\Block\\Html\\Header\\Logo",
    "Magento\\Catalog\\Model\\Product\\Visibility",
    "Magento\\Catalog\\Model\\Product\\Attribute\\Source\\Status",
    "Magento\\Catalog\\Model\\Product\\Type",
    "Magento\\Catalog\\Model\\Product\\Media\\Config",
    "Magento\\CatalogInventory\\Model\\Stock",
    "Magento\\Sales\\Model\\Order\\Status",
    "Magento\\Sales\\Model\\Order\\Config",
    "Magento\\Customer\\Model\\Group",
    "Magento\\Customer\\Model\\Customer\\Attribute\\Source\\Group",
    "Magento\\Store\\Model\\StoreManager",
    "Magento\\Store\\Model\\Store",
    "Magento\\Indexer\\Model\\Indexer\\State",
    "Magento\\Tax\\Model\\Calculation",
    "Magento\\Tax\\Model\\Config",
    "Magento\\Directory\\Model\\Currency",
    "Magento\\Directory\\Model\\Country",
    "Magento\\Directory\\Model\\Region",
    "Magento\\Quote\\Model\\Quote\\Address\\RateResult\\Method",
    "Magento\\Quote\\Model\\Quote\\Item\\Option",
})

IGNORED_SUBSTRINGS = ("Magento\\Framework", "Context", "Session", "Helper", "Stdlib", "Serializer", "Generator")
LEGITIMATE_SUFFIXES = ("Interface", "Factory", "Provider", "Resolver")
COMMAND_PARENTS = ("Symfony\\Component\\Console\\Command\\Command",)


def is_ignored_argument(class_name: str) -> bool:
    return (
        class_name in IGNORED_CLASSES
        or class_name.lower() in BASIC_TYPES
        or matches_suffix(class_name, LEGITIMATE_SUFFIXES)
        or matches_substring(class_name, IGNORED_SUBSTRINGS)
        or class_name in KNOWN_HEAVY_CLASSES
    )


def _is_factory_or_command(symbols: FileSymbols) -> bool:
    declaration = symbols.declaration
    if declaration is None:
        return False
    if declaration.name.endswith("Factory"):
        return True
    return declaration.parent in COMMAND_PARENTS or declaration.name.endswith("Command")


class SpecificClassInjection(FileProcessor):
    """Collections, repositories, API models and resource models injected as concrete classes.

    Children are looked up in the type hierarchy: a type that was never
    extended is treated the same as one with zero known children, both
    meaning the fix can be applied without touching subclasses.
    """

    rules = (
        COLLECTION,
        COLLECTION_WITH_CHILDREN,
        REPOSITORY,
        REPOSITORY_WITH_CHILDREN,
        MODEL_WITH_INTERFACE,
        RESOURCE_MODEL,
        GENERIC_CLASS,
    )
    categories = (FileCategory.SOURCE,)

    def process_file(self, source: SourceFile, index: SymbolIndex) -> None:
        symbols = index.symbols_for(source)
        if symbols is None or not symbols.consolidated:
            return
        if _is_factory_or_command(symbols):
            return

        text = source.text
        own_class = symbols.class_name or ""
        for parameter, resolution in symbols.consolidated.items():
            if resolution.is_unresolved or symbols.signature.forwards_to_parent(parameter):
                continue
            param_class = resolution.value.lstrip("\\")
            if is_ignored_argument(param_class):
                continue
            line = get_line_number(text, f"${parameter}") or 1
            if self._model_violation(source, line, f"${parameter}", param_class, own_class, index):
                continue
            if is_non_magento_library(param_class):
                continue
            self.add_finding(
                source, line,
                f'Specific class "{param_class}" injected in ${parameter}. Consider using a factory, '
                f"builder, or interface instead. (Note: This is a suggestion - manual verification recommended)",
                Severity.WARNING,
                rule_id=GENERIC_CLASS.rule_id,
                metadata={"specificClasses": {param_class: f"${parameter}"}},
            )

    def _children_of(self, class_name: str, index: SymbolIndex) -> list[str]:
        try:
            return sorted(index.get_subtypes(class_name))
        except SubtypesNotFoundError:
            return []

    def _model_violation(self, source: SourceFile, line: int, variable: str, param_class: str,
                         own_class: str, index: SymbolIndex) -> bool:
        handled = False
        container = False
        children = self._children_of(param_class, index)
        child_names = ", ".join(short_name(child) for child in children)

        if is_collection_type(param_class):
            container = handled = True
            if children:
                self.add_finding(
                    source, line,
                    f'Collection "{param_class}" injected in {variable}. Collections must use Factory '
                    f"pattern. However, this class has {len(children)} child class(es): {child_names}. "
                    f"Manual refactoring required.",
                    Severity.WARNING,
                    rule_id=COLLECTION_WITH_CHILDREN.rule_id,
                    metadata={"collections": {param_class: variable}, "children": children},
                )
            else:
                self.add_finding(
                    source, line,
                    f'Collection "{param_class}" injected in {variable}. Collections must use Factory '
                    f'pattern. Inject "{param_class}Factory" instead.',
                    Severity.ERROR,
                    rule_id=COLLECTION.rule_id,
                    metadata={"collections": {param_class: variable}},
                )

        if is_repository(param_class):
            container = handled = True
            interface = repository_interface(param_class)
            if children:
                self.add_finding(
                    source, line,
                    f'Repository "{param_class}" injected as concrete class in {variable}. Use interface '
                    f'"{interface}" instead. However, this class has {len(children)} child class(es): '
                    f"{child_names}. Manual refactoring required.",
                    Severity.WARNING,
                    rule_id=REPOSITORY_WITH_CHILDREN.rule_id,
                    metadata={"repositories": {param_class: {"interface": interface}}, "children": children},
                )
            else:
                self.add_finding(
                    source, line,
                    f'Repository "{param_class}" injected as concrete class in {variable}. Use interface '
                    f'"{interface}" instead.',
                    Severity.ERROR,
                    rule_id=REPOSITORY.rule_id,
                    metadata={"repositories": {param_class: {"interface": interface}}},
                )

        api_interface = index.api_interface_of(param_class)
        if api_interface:
            handled = True
            self.add_finding(
                source, line,
                f'Model "{param_class}" implements an API interface but is injected as concrete class '
                f"in {variable}. Inject the API interface instead to respect preferences and coding standards.",
                Severity.ERROR,
                rule_id=MODEL_WITH_INTERFACE.rule_id,
                metadata={"models": {param_class: {"interface": api_interface}}},
            )

        if not container and is_resource_model(param_class):
            # Resource models inside repositories and other resource models are expected
            if not is_resource_model(own_class) and not is_repository(own_class):
                self.add_finding(
                    source, line,
                    f'Resource Model "{param_class}" injected in {variable}. Resource models should not '
                    f"be directly injected. Use a repository instead for better separation of concerns.",
                    Severity.WARNING,
                    rule_id=RESOURCE_MODEL.rule_id,
                )
            handled = True

        return handled
