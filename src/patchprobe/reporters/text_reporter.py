"""Plain status-line output for the calling management agent."""

from __future__ import annotations

from patchprobe.models import CheckResult, ProbeReport


def render_result(result: CheckResult) -> str:
    """Return the single formatted status line for one probe."""
    if result.status_line:
        return result.status_line
    if result.error_message:
        return f"{result.check_name}: {result.status.upper()} - {result.error_message}"
    return f"{result.check_name}: {result.status.upper()}"


def render(report: ProbeReport) -> str:
    """Return one status line per probe, joined with newlines."""
    return "\n".join(render_result(r) for r in report.results)


def generate(report: ProbeReport, output_dir: str) -> str:
    """Print the status lines to stdout.

    Args:
        report: The report to render.
        output_dir: Unused for text output, kept for interface consistency.

    Returns:
        Empty string (text output has no file path).
    """
    print(render(report))
    return ""
