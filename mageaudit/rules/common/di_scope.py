"""Area scope of DI configuration files and of class names."""

from mageaudit.indexer.config import AREA_DIRECTORIES

GLOBAL = "global"
FRONTEND = "frontend"
ADMINHTML = "adminhtml"

ADMINHTML_PATTERNS: tuple[str, ...] = (
    "\\Block\\Adminhtml\\",
    "\\Controller\\Adminhtml\\",
    "\\Ui\\Component\\",
    "\\Adminhtml\\",
)

FRONTEND_PATTERNS: tuple[str, ...] = (
    "\\ViewModel\\",
    "\\Controller\\Customer\\",
    "\\Controller\\Checkout\\",
    "\\Controller\\Catalog\\",
    "\\Controller\\Cart\\",
    "\\Frontend\\",
)


def get_scope(file_path: str) -> str:
    """Area a di.xml applies to, judged from its etc/<area>/ directory."""
    normalized = str(file_path).replace("\\", "/")
    for area in AREA_DIRECTORIES:
        if f"/etc/{area}/" in normalized:
            return area
    return GLOBAL


def detect_class_area(class_name: str) -> str | None:
    """Area a class obviously belongs to, or None for shared/ambiguous classes."""
    for pattern in ADMINHTML_PATTERNS:
        if pattern in class_name:
            return ADMINHTML
    if "\\Block\\" in class_name:
        return FRONTEND
    for pattern in FRONTEND_PATTERNS:
        if pattern in class_name:
            return FRONTEND
    return None
