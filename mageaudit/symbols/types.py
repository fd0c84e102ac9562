"""Name-based heuristics over fully-qualified type names."""

from collections.abc import Iterable

# Third-party PHP vendors that are never Magento modules
NON_MAGENTO_VENDORS: tuple[str, ...] = (
    "GuzzleHttp\\",
    "Monolog\\",
    "Psr\\",
    "Symfony\\",
    "Laminas\\",
    "League\\",
    "Composer\\",
    "Doctrine\\",
    "phpDocumentor\\",
    "PHPUnit\\",
    "Webmozart\\",
    "Ramsey\\",
    "Firebase\\",
    "Google\\",
    "Aws\\",
    "Carbon\\",
    "Brick\\",
    "Sabberworm\\",
    "Pelago\\",
    "Colinodell\\",
    "Fig\\",
    "Zend\\",
)


def is_collection_type(class_name: str) -> bool:
    return "Collection" in class_name and "CollectionFactory" not in class_name


def is_collection_factory_type(class_name: str) -> bool:
    return "CollectionFactory" in class_name


def is_repository(class_name: str) -> bool:
    return "Repository" in class_name


def is_resource_model(class_name: str) -> bool:
    return "ResourceModel" in class_name


def is_non_magento_library(class_name: str) -> bool:
    return class_name.lstrip("\\").startswith(NON_MAGENTO_VENDORS)


def matches_suffix(class_name: str, suffixes: Iterable[str]) -> bool:
    return any(class_name.endswith(suffix) for suffix in suffixes)


def matches_substring(class_name: str, substrings: Iterable[str]) -> bool:
    return any(substring in class_name for substring in substrings)


def repository_interface(class_name: str) -> str:
    """Conventional service contract for a repository class.

    ``Vendor\\Module\\Model\\FooRepository`` -> ``Vendor\\Module\\Api\\FooRepositoryInterface``
    """
    if "\\Model\\" in class_name:
        namespace, _, rest = class_name.partition("\\Model\\")
        short = rest.rsplit("\\", 1)[-1]
        return f"{namespace}\\Api\\{short}Interface"
    return class_name + "Interface"


def short_name(class_name: str) -> str:
    return class_name.rsplit("\\", 1)[-1]
