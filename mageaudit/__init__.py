"""mageaudit - heuristic static analysis for Magento-style PHP, templates and DI XML."""

__version__ = "0.4.0"
