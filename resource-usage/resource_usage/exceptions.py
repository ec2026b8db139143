"""Errors that stop a report run before any output is written."""

from typing import List, Optional


class ReportFormatError(ValueError):
    """Raised when the activity report is structurally wrong (header, quoting)."""
    def __init__(self, message: str, problems: Optional[List[str]] = None):
        super().__init__(message)
        self.message = message
        self.problems = problems or []


class MappingFormatError(ValueError):
    """Raised when a mapping snapshot does not have the expected shape."""
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
