"""Probe discovery, orchestration, and report assembly."""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
from datetime import datetime, timezone

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

import patchprobe.checks as checks_package
from patchprobe.checks.base import BaseCheck
from patchprobe.config import Config
from patchprobe.models import CATEGORY_ORDER, CheckResult, ProbeReport
from patchprobe.platform import get_hostname, get_os_version

log = logging.getLogger(__name__)

console = Console(stderr=True)


class UnknownCheckError(LookupError):
    """Raised when a CHECK_ID does not match any discovered probe."""


class Engine:
    """Discovers and runs probes, producing a ProbeReport."""

    def __init__(self, config: Config):
        self.config = config
        self.checks: list[BaseCheck] = []

    def _check_classes(self) -> list[type[BaseCheck]]:
        """Walk the checks package and return unique BaseCheck subclasses."""
        check_classes: list[type[BaseCheck]] = []

        for module_info in pkgutil.walk_packages(
            checks_package.__path__,
            prefix=checks_package.__name__ + ".",
        ):
            try:
                module = importlib.import_module(module_info.name)
            except Exception as exc:
                log.warning("failed to import %s: %s", module_info.name, exc)
                continue

            for _name, obj in inspect.getmembers(module, inspect.isclass):
                if (
                    issubclass(obj, BaseCheck)
                    and obj is not BaseCheck
                    and obj.CHECK_ID  # skip classes without CHECK_ID
                ):
                    check_classes.append(obj)

        seen: set[str] = set()
        unique: list[type[BaseCheck]] = []
        for cls in check_classes:
            if cls.CHECK_ID not in seen:
                seen.add(cls.CHECK_ID)
                unique.append(cls)
        return unique

    def discover_checks(self) -> list[BaseCheck]:
        """Find all probes, filter them by config and instantiate them.

        Returns:
            List of instantiated BaseCheck subclasses, filtered by config.
        """
        filtered: list[type[BaseCheck]] = []
        for cls in self._check_classes():
            if self.config.is_check_disabled(cls.CHECK_ID):
                continue
            if not self.config.is_category_enabled(cls.CATEGORY.value):
                continue
            if self.config.skip_admin_checks and cls.REQUIRES_ADMIN:
                continue
            filtered.append(cls)

        # Sort by category order, then by CHECK_ID for stable ordering
        filtered.sort(key=lambda c: (CATEGORY_ORDER.get(c.CATEGORY, 999), c.CHECK_ID))

        self.checks = [cls(self.config.get_check_config(cls.CHECK_ID)) for cls in filtered]
        return self.checks

    def list_checks(self) -> list[dict]:
        """Return metadata for all discovered checks (for --list-checks)."""
        self.discover_checks()
        return [
            {
                "check_id": check.CHECK_ID,
                "name": check.NAME,
                "category": check.CATEGORY.value,
                "requires_admin": check.REQUIRES_ADMIN,
                "requires_tools": check.REQUIRES_TOOLS,
                "description": check.DESCRIPTION,
            }
            for check in self.checks
        ]

    def get_check(self, check_id: str) -> BaseCheck:
        """Instantiate a single probe by id, ignoring category/disabled filters."""
        wanted = check_id.upper()
        for cls in self._check_classes():
            if cls.CHECK_ID == wanted:
                return cls(self.config.get_check_config(cls.CHECK_ID))
        raise UnknownCheckError(check_id)

    def run_check(self, check_id: str) -> CheckResult:
        """Run one probe and return its result (the management-agent path)."""
        return self.get_check(check_id).execute()

    def run(self, show_progress: bool = True) -> ProbeReport:
        """Execute all discovered probes and assemble the report."""
        if not self.checks:
            self.discover_checks()

        scan_start = datetime.now(timezone.utc)
        results: list[CheckResult] = []

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TimeElapsedColumn(),
            console=console,
            disable=not show_progress,
            transient=True,
        ) as progress:
            task = progress.add_task("Running probes...", total=len(self.checks))

            for check in self.checks:
                progress.update(task, description=f"[cyan]{check.CHECK_ID}[/cyan] {check.NAME}")
                result = check.execute()
                log.debug("%s finished: %s in %.3fs", result.check_id, result.status, result.duration_seconds)
                results.append(result)
                progress.advance(task)

        report = ProbeReport(
            hostname=get_hostname(),
            os_version=get_os_version(),
            scan_start=scan_start,
            scan_end=datetime.now(timezone.utc),
            results=results,
        )
        report.compute_summary()
        return report
