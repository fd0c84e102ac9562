"""mageaudit rule processors.

Each sub-package groups processors by concern. Processors are discovered
once by the orchestrator; adding a rule means adding a Processor subclass
to one of these modules.
"""

from .base import Finding, Processor, RuleInfo, RuleReport, ScanResult, Severity
from .orchestrator import RulesOrchestrator, run_scan

__all__ = [
    "Finding",
    "Processor",
    "RuleInfo",
    "RuleReport",
    "RulesOrchestrator",
    "ScanResult",
    "Severity",
    "run_scan",
]
