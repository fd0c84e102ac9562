"""Indexer configuration - constants and patterns.

This module contains the classification constants used by the file walker.
Values that users may override live in config_runtime.DEFAULTS; these are
the fixed facts about the file kinds the engine understands.
"""

# =============================================================================
# FILE CLASSIFICATION
# =============================================================================

# Presentation templates (markup mixed with inline PHP)
TEMPLATE_EXTENSIONS: frozenset[str] = frozenset({"phtml"})

# Markup files: generic configuration unless the basename is reserved
MARKUP_EXTENSIONS: frozenset[str] = frozenset({"xml"})

# Basename of the dependency-injection configuration file
DEPENDENCY_CONFIG_FILENAME = "di.xml"

# General object-oriented source code
SOURCE_EXTENSIONS: frozenset[str] = frozenset({"php"})

RECOGNIZED_EXTENSIONS: frozenset[str] = TEMPLATE_EXTENSIONS | MARKUP_EXTENSIONS | SOURCE_EXTENSIONS


# =============================================================================
# MODULE LAYOUT
# =============================================================================

# Area-scoped configuration directories under a module's etc/
AREA_DIRECTORIES: tuple[str, ...] = (
    "frontend",
    "adminhtml",
    "webapi_rest",
    "webapi_soap",
    "crontab",
    "graphql",
)

# Directory that terminates the upward search for a module's etc/di.xml
MODULE_ROOT_MARKER = ("app", "code")
