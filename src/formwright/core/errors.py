"""
Error types for formwright template compilation and form workflows.

Template problems (structural issues found while compiling) are *returned*
as ``TemplateIssue`` lists, never raised. Exceptions in this module are
reserved for conditions a caller must handle explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class IssueSeverity(str, Enum):
    """Severity of a template issue."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class TemplateIssue:
    """
    A structural problem found in a template.

    Attributes:
        line: 1-indexed source line (best effort, 0 when unknown)
        message: Human-readable description
        severity: Only ERROR issues block publishing a compiled template
    """

    line: int
    message: str
    severity: IssueSeverity = IssueSeverity.ERROR

    @property
    def is_error(self) -> bool:
        return self.severity == IssueSeverity.ERROR

    def format(self) -> str:
        """Format as ``line 12: message`` (or just the message when line is unknown)."""
        if self.line > 0:
            return f"line {self.line}: {self.message}"
        return self.message

    def to_dict(self) -> dict[str, object]:
        return {"line": self.line, "message": self.message, "severity": self.severity.value}


class FormwrightError(Exception):
    """Base exception for all formwright errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TemplateInvalidError(FormwrightError):
    """
    Raised when an operation needs a valid compiled template but got one with errors.

    Examples:
    - Rendering a template with data when compilation reported errors
    """

    def __init__(self, issues: list[TemplateIssue], message: str | None = None):
        self.issues = issues
        if message is None:
            summary = "; ".join(issue.format() for issue in issues[:3])
            message = f"Cannot use invalid template: {summary}" if summary else "Invalid template"
        super().__init__(message)


class LinkError(FormwrightError):
    """Base exception for access-link resolution problems."""

    pass


class LinkNotFoundError(LinkError):
    """Raised when no access link matches a token."""

    pass


class LinkExpiredError(LinkError):
    """Raised when an access link is resolved after its expiry time."""

    pass


def blocking_issues(issues: list[TemplateIssue]) -> list[TemplateIssue]:
    """Return only the issues that block publishing (ERROR severity)."""
    return [issue for issue in issues if issue.is_error]
