"""BaseCheck abstract base class -- template method pattern for all probes."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

from patchprobe.models import Category, CheckResult, Finding, Severity
from patchprobe.platform import has_tool, is_admin, is_windows

_SEVERITY_SCORES = {
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


def derive_status(findings: list[Finding]) -> str:
    """Map the average severity of actionable findings to a result status."""
    actionable = [f for f in findings if f.severity in _SEVERITY_SCORES]
    if not actionable:
        return "passed"
    if any(f.severity == Severity.CRITICAL for f in actionable):
        return "critical"
    avg = sum(_SEVERITY_SCORES[f.severity] for f in actionable) / len(actionable)
    if avg < 2.5:
        return "medium"
    return "high"


class BaseCheck(ABC):
    """Abstract base class for all probes.

    Subclasses must define CHECK_ID, NAME, DESCRIPTION, CATEGORY class
    attributes and implement run() and summarize().

    The execute() template method handles platform checks, privilege
    validation, tool availability, timing, and error handling.
    """

    CHECK_ID: str = ""
    NAME: str = ""
    DESCRIPTION: str = ""
    CATEGORY: Category = Category.UPDATE_HEALTH
    REQUIRES_ADMIN: bool = False
    REQUIRES_TOOLS: list[str] = []
    DEFAULTS: dict[str, Any] = {}

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        self.config: dict[str, Any] = {**self.DEFAULTS, **(config or {})}
        self.context: dict = {}

    def _skipped(self, reason: str) -> CheckResult:
        return CheckResult(
            check_id=self.CHECK_ID,
            check_name=self.NAME,
            category=self.CATEGORY,
            status="skipped",
            error_message=reason,
            status_line=f"{self.NAME}: SKIPPED - {reason}",
        )

    def execute(self) -> CheckResult:
        """Execute the check with full lifecycle management.

        1. Check if running on Windows
        2. Check admin privileges if required
        3. Check external tool availability if required
        4. Run the check with timing
        5. Handle any exceptions

        Returns:
            CheckResult with status, findings, timing, status line and error info.
        """
        if not is_windows():
            return self._skipped("Not running on Windows")

        if self.REQUIRES_ADMIN and not is_admin():
            return self._skipped("Requires administrator privileges")

        for tool in self.REQUIRES_TOOLS:
            if not has_tool(tool):
                return self._skipped(f"Required tool not found: {tool}")

        start_time = time.monotonic()
        try:
            findings = self.run()
            status_line = self.summarize(findings)
        except Exception as exc:
            duration = time.monotonic() - start_time
            message = f"{type(exc).__name__}: {exc}"
            return CheckResult(
                check_id=self.CHECK_ID,
                check_name=self.NAME,
                category=self.CATEGORY,
                status="error",
                duration_seconds=round(duration, 3),
                error_message=message,
                context=self.context,
                status_line=f"{self.NAME}: ERROR - {message}",
            )

        duration = time.monotonic() - start_time
        return CheckResult(
            check_id=self.CHECK_ID,
            check_name=self.NAME,
            category=self.CATEGORY,
            status=derive_status(findings),
            duration_seconds=round(duration, 3),
            findings=findings,
            context=self.context,
            status_line=status_line,
        )

    def finding(
        self,
        title: str,
        description: str,
        severity: Severity,
        affected_item: str,
        evidence: str,
        recommendation: str,
        references: list[str] | None = None,
    ) -> Finding:
        """Build a Finding stamped with this check's id and category."""
        return Finding(
            check_id=self.CHECK_ID,
            title=title,
            description=description,
            severity=severity,
            category=self.CATEGORY,
            affected_item=affected_item,
            evidence=evidence,
            recommendation=recommendation,
            references=references or [],
        )

    @abstractmethod
    def run(self) -> list[Finding]:
        """Implement the actual check logic.

        Returns:
            List of Finding objects. Empty list means the check passed.
            Intermediate state the status line needs goes in self.context.
        """
        ...

    @abstractmethod
    def summarize(self, findings: list[Finding]) -> str:
        """Render the one-line status string handed back to the calling agent."""
        ...
