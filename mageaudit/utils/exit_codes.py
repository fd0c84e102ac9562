"""Centralized exit codes derived from scan results."""


class ExitCodes:
    """Standard exit codes handed to whatever front end embeds the engine."""

    SUCCESS = 0

    WARNINGS_FOUND = 1
    ERRORS_FOUND = 2

    TASK_INCOMPLETE = 3

    @classmethod
    def from_counts(cls, errors: int, warnings: int) -> int:
        """Pick the exit code for a finished scan from its severity totals."""
        if errors:
            return cls.ERRORS_FOUND
        if warnings:
            return cls.WARNINGS_FOUND
        return cls.SUCCESS

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get human-readable description for an exit code."""
        descriptions = {
            cls.SUCCESS: "Success - No issues found",
            cls.WARNINGS_FOUND: "Warning findings detected",
            cls.ERRORS_FOUND: "Error findings detected",
            cls.TASK_INCOMPLETE: "Scan could not start: root path missing or unreadable",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")

    @classmethod
    def should_fail_pipeline(cls, code: int) -> bool:
        """Determine if an exit code should fail a CI/CD pipeline."""
        return code >= cls.ERRORS_FOUND
