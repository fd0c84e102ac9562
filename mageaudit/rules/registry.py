"""Processor discovery.

Every module under a rules sub-package is imported once and scanned for
concrete Processor subclasses declaring at least one rule. The result is
a tuple ordered by module path then class name, so reports always come
out in the same order.
"""

import importlib
import inspect
from functools import lru_cache
from pathlib import Path

from mageaudit.utils.logging import logger

from .base import Processor

# Shared helpers, never processors
EXCLUDED_PACKAGES = frozenset({"common"})


def _iter_rule_modules():
    import mageaudit.rules as rules_package

    rules_dir = Path(rules_package.__file__).parent
    for subdir in sorted(rules_dir.iterdir()):
        if not subdir.is_dir() or subdir.name.startswith("__") or subdir.name in EXCLUDED_PACKAGES:
            continue
        if not (subdir / "__init__.py").exists():
            continue
        for py_file in sorted(subdir.glob("*.py")):
            if py_file.name.startswith("__"):
                continue
            yield f"{rules_package.__name__}.{subdir.name}.{py_file.stem}"


def _is_processor(obj, module_name: str) -> bool:
    return (
        inspect.isclass(obj)
        and issubclass(obj, Processor)
        and not inspect.isabstract(obj)
        and obj.__module__ == module_name
        and bool(obj.rules)
    )


@lru_cache(maxsize=1)
def discover_processors() -> tuple[type[Processor], ...]:
    """All Processor classes of the rule catalog, in stable order.

    Raises:
        ImportError: a rule module fails to import
    """
    found: list[type[Processor]] = []
    for module_name in _iter_rule_modules():
        module = importlib.import_module(module_name)
        for _, obj in inspect.getmembers(module, lambda o: _is_processor(o, module_name)):
            found.append(obj)
            logger.debug(f"Found processor {module_name}.{obj.__name__} ({', '.join(r.rule_id for r in obj.rules)})")
    return tuple(found)


def rule_catalog() -> dict[str, type[Processor]]:
    """Rule id -> the Processor class reporting it."""
    catalog: dict[str, type[Processor]] = {}
    for processor in discover_processors():
        for rule in processor.rules:
            if rule.rule_id in catalog:
                raise ValueError(
                    f"Rule {rule.rule_id} declared by both {catalog[rule.rule_id].__name__} "
                    f"and {processor.__name__}"
                )
            catalog[rule.rule_id] = processor
    return catalog
