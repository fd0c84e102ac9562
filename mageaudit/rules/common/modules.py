"""Module naming and layout helpers for Magento-style trees."""

import os
import re
from collections.abc import Collection, Iterable

from mageaudit.indexer.config import DEPENDENCY_CONFIG_FILENAME, MODULE_ROOT_MARKER

_APP_CODE_RE = re.compile(r"/app/code/([A-Z][a-zA-Z0-9]+)/([A-Z][a-zA-Z0-9]+)/")
_VENDOR_RE = re.compile(r"/vendor/([a-z0-9-]+)/(?:magento2?-)?([a-z0-9-]+)/", re.IGNORECASE)
_GENERIC_RE = re.compile(
    r"/([A-Z][a-zA-Z0-9]*)/([A-Z][a-zA-Z0-9]*)/(?:Block|Model|ViewModel|Controller|Helper)/"
)
_MODULE_ROOT_RE = re.compile(r"^(.*?/app/code/[^/]+/[^/]+)/")


def _pascal(slug: str) -> str:
    return "".join(part.capitalize() for part in slug.split("-") if part)


def _normalize(path: str) -> str:
    return str(path).replace("\\", "/")


def extract_module_name(file_path: str) -> str | None:
    """Vendor_Module for a path under app/code, vendor/ or a Vendor/Module/<layer>/ tree."""
    path = _normalize(file_path)
    match = _APP_CODE_RE.search(path)
    if match:
        return f"{match.group(1)}_{match.group(2)}"
    match = _VENDOR_RE.search(path)
    if match:
        return f"{_pascal(match.group(1))}_{_pascal(match.group(2))}"
    match = _GENERIC_RE.search(path)
    if match:
        return f"{match.group(1)}_{match.group(2)}"
    return None


def group_files_by_module(files: Iterable) -> dict[str, list]:
    """Group SourceFiles (or paths) by module name; files outside any module are dropped."""
    grouped: dict[str, list] = {}
    for item in files:
        module = extract_module_name(getattr(item, "posix_path", item))
        if module is not None:
            grouped.setdefault(module, []).append(item)
    return grouped


def is_same_module(class_a: str, class_b: str) -> bool:
    """True when both classes share their first two namespace segments."""
    parts_a = class_a.lstrip("\\").split("\\")
    parts_b = class_b.lstrip("\\").split("\\")
    return len(parts_a) > 1 and len(parts_b) > 1 and parts_a[:2] == parts_b[:2]


def is_block_file(file_path: str) -> bool:
    return re.search(r"/Block/[^/]+\.php$", _normalize(file_path)) is not None


def is_setup_directory(file_path: str) -> bool:
    return "/Setup/" in _normalize(file_path)


def is_test_file(file_path: str) -> bool:
    path = _normalize(file_path)
    return "/Test/" in path or "/tests/" in path


def module_root(file_path: str) -> str | None:
    """app/code/Vendor/Module directory of a file, when it lives under app/code."""
    match = _MODULE_ROOT_RE.match(_normalize(file_path))
    return match.group(1) if match else None


def find_di_xml_for_file(file_path: str, known_paths: Collection[str] | None = None) -> str | None:
    """Walk up from a source file to the nearest ``etc/di.xml``.

    Stops at the app/code boundary. ``known_paths`` (posix paths of the
    dependency-xml bucket) is consulted before the filesystem.
    """
    def exists(candidate: str) -> bool:
        if known_paths is not None and candidate in known_paths:
            return True
        return os.path.isfile(candidate)

    path = _normalize(file_path)
    root = module_root(path)
    if root:
        candidate = f"{root}/etc/{DEPENDENCY_CONFIG_FILENAME}"
        if exists(candidate):
            return candidate

    marker = "/" + "/".join(MODULE_ROOT_MARKER)
    directory = os.path.dirname(path)
    while directory not in ("", "/", "."):
        candidate = f"{directory}/etc/{DEPENDENCY_CONFIG_FILENAME}"
        if exists(candidate):
            return candidate
        if directory.endswith(marker):
            break
        parent = os.path.dirname(directory)
        if parent == directory:
            break
        directory = parent
    return None
