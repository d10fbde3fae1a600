"""Rich console report output."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from patchprobe.models import SEVERITY_ORDER, ProbeReport, Severity

SEVERITY_COLORS = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "cyan",
    Severity.INFO: "dim",
}

STATUS_STYLES = {
    "passed": "green",
    "medium": "yellow",
    "high": "red",
    "critical": "bold red",
    "error": "bold magenta",
    "skipped": "dim",
}


def generate(
    report: ProbeReport,
    output_dir: str,
    minimum_severity: Severity = Severity.LOW,
    console: Console | None = None,
) -> str:
    """Display the report on the console using Rich.

    Args:
        report: The report to display.
        output_dir: Unused for console output, kept for interface consistency.
        minimum_severity: Findings below this severity are left out of the detail list.
        console: Console to print to (a fresh one by default).

    Returns:
        Empty string (console output has no file path).
    """
    con = console or Console()

    con.print()
    con.print("[bold]patchprobe - Compliance Report[/bold]")
    con.print(f"Host: {report.hostname}")
    con.print(f"OS: {report.os_version}")
    con.print(f"Scan: {report.scan_start.isoformat()} to {report.scan_end.isoformat()}")
    con.print()

    results_table = Table(title="Probe Results")
    results_table.add_column("ID", style="cyan", width=10)
    results_table.add_column("Status", width=9)
    results_table.add_column("Findings", justify="right", width=8)
    results_table.add_column("Summary")

    for result in report.results:
        style = STATUS_STYLES.get(result.status, "")
        results_table.add_row(
            result.check_id,
            f"[{style}]{result.status}[/{style}]",
            str(len(result.findings)),
            result.status_line or result.error_message or "",
        )

    con.print(results_table)
    con.print()

    threshold = SEVERITY_ORDER[minimum_severity]
    shown = False
    for result in report.results:
        for finding in result.findings:
            if SEVERITY_ORDER[finding.severity] > threshold:
                continue
            if not shown:
                con.print("[bold]Findings Detail[/bold]")
                con.print()
                shown = True

            sev_style = SEVERITY_COLORS.get(finding.severity, "")
            con.print(f"  [{sev_style}][{finding.severity.value}][/{sev_style}] {finding.title}")
            con.print(f"    Check: {finding.check_id}")
            con.print(f"    Affected: {finding.affected_item}")
            con.print(f"    {finding.description}")
            con.print(f"    Recommendation: {finding.recommendation}")
            if finding.references:
                con.print(f"    References: {', '.join(finding.references)}")
            con.print()

    skipped = [r for r in report.results if r.status == "skipped"]
    if skipped:
        con.print(f"[dim]{len(skipped)} probe(s) skipped: {skipped[0].error_message}[/dim]")
        con.print()

    return ""
