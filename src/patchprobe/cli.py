"""Click CLI interface for patchprobe."""

from __future__ import annotations

import logging
import sys
from datetime import date, datetime

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from patchprobe import __version__
from patchprobe.config import Config
from patchprobe.engine import Engine, UnknownCheckError
from patchprobe.patch_calendar import (
    classify_release,
    latest_patch_tuesday,
    next_patch_tuesday,
    patch_tuesday as second_tuesday,
)
from patchprobe.platform import is_admin, is_windows
from patchprobe.reporters import console_reporter, json_reporter, text_reporter

console = Console()
err_console = Console(stderr=True)

# Exit codes for `probe`, read by the calling management agent
EXIT_PASSED = 0
EXIT_FINDINGS = 1
EXIT_CRITICAL = 2
EXIT_NOT_RUN = 3


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load_config(config_path: str | None) -> Config:
    if config_path:
        return Config.from_yaml(config_path)
    return Config.from_defaults()


@click.group()
@click.version_option(version=__version__, prog_name="patchprobe")
def main():
    """patchprobe - Windows update health and patch compliance probes."""


@main.command()
@click.option("--categories", default=None, help="Comma-separated categories to run (default: all)")
@click.option("--severity", default=None, help="Minimum severity to show in console detail (default: INFO)")
@click.option("--output-dir", default=None, help="Output directory for JSON reports (default: ./reports)")
@click.option("--format", "formats", default=None, help="Output formats: text,console,json (default: text)")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Path to config YAML")
@click.option("--skip-admin-checks", is_flag=True, help="Skip probes requiring admin privileges")
@click.option("--list-checks", is_flag=True, help="List all available probes and exit")
@click.option("--web-lookup", is_flag=True, help="Look up the newest KB on Microsoft's update history pages")
@click.option("--verbose", is_flag=True, help="Debug logging on stderr")
def scan(
    categories: str | None,
    severity: str | None,
    output_dir: str | None,
    formats: str | None,
    config_path: str | None,
    skip_admin_checks: bool,
    list_checks: bool,
    web_lookup: bool,
    verbose: bool,
):
    """Run all enabled probes on this system."""
    setup_logging(verbose)
    config = _load_config(config_path)
    config.apply_overrides(
        categories=categories,
        severity=severity,
        output_dir=output_dir,
        formats=formats,
        skip_admin=skip_admin_checks,
        web_lookup=web_lookup,
        verbose=verbose,
    )

    engine = Engine(config)

    if list_checks:
        checks = engine.list_checks()
        table = Table(title=f"Available Probes ({len(checks)} total)")
        table.add_column("ID", style="cyan", width=10)
        table.add_column("Name", width=28)
        table.add_column("Category", width=17)
        table.add_column("Admin", width=6)
        table.add_column("Description", width=60)

        for check in checks:
            table.add_row(
                check["check_id"],
                check["name"],
                check["category"],
                "Yes" if check["requires_admin"] else "No",
                check["description"][:60],
            )

        console.print(table)
        return

    if is_windows() and not is_admin() and not config.skip_admin_checks:
        logging.getLogger(__name__).warning(
            "running without administrator privileges; gpresult and some registry reads may be incomplete"
        )

    report = engine.run(show_progress="console" in config.output_formats)

    output_files: list[str] = []
    for fmt in config.output_formats:
        if fmt == "text":
            text_reporter.generate(report, config.output_directory)
        elif fmt == "console":
            console_reporter.generate(report, config.output_directory, minimum_severity=config.minimum_severity)
        elif fmt == "json":
            output_files.append(json_reporter.generate(report, config.output_directory))
        else:
            err_console.print(f"[yellow]Unknown output format: {fmt}[/yellow]")

    for path in output_files:
        err_console.print(f"Report written: {path}")

    if report.has_critical_findings():
        sys.exit(2)


def exit_code_for(status: str) -> int:
    """Map a CheckResult status to the `probe` exit code."""
    if status == "passed":
        return EXIT_PASSED
    if status == "critical":
        return EXIT_CRITICAL
    if status in ("skipped", "error"):
        return EXIT_NOT_RUN
    return EXIT_FINDINGS


@main.command()
@click.argument("check_id")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True), help="Path to config YAML")
@click.option("--web-lookup", is_flag=True, help="Look up the newest KB on Microsoft's update history pages")
@click.option("--verbose", is_flag=True, help="Debug logging on stderr")
def probe(check_id: str, config_path: str | None, web_lookup: bool, verbose: bool):
    """Run a single probe and print its status line.

    The status line is the only thing written to stdout. The exit code is
    0 when the probe passed, 1 for findings, 2 for critical findings and
    3 when the probe was skipped or failed.
    """
    setup_logging(verbose)
    config = _load_config(config_path)
    config.apply_overrides(web_lookup=web_lookup, verbose=verbose)

    try:
        result = Engine(config).run_check(check_id)
    except UnknownCheckError:
        err_console.print(f"[bold red]ERROR: unknown probe {check_id}[/bold red]")
        sys.exit(EXIT_NOT_RUN)

    click.echo(text_reporter.render_result(result))
    sys.exit(exit_code_for(result.status))


def _parse_month(value: str) -> tuple[int, int]:
    try:
        parsed = datetime.strptime(value, "%Y-%m")
    except ValueError:
        raise click.BadParameter("expected YYYY-MM", param_hint="--month") from None
    return parsed.year, parsed.month


def _parse_day(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter("expected YYYY-MM-DD", param_hint="--classify") from None


@main.command("patch-tuesday")
@click.option("--month", default=None, help="Month as YYYY-MM (default: current month)")
@click.option("--classify", "classify", default=None, help="Release date YYYY-MM-DD to classify")
def patch_tuesday_cmd(month: str | None, classify: str | None):
    """Show the Patch Tuesday for a month, or classify a release date."""
    if month:
        year, mon = _parse_month(month)
    else:
        today = date.today()
        year, mon = today.year, today.month

    click.echo(f"Patch Tuesday {year:04d}-{mon:02d}: {second_tuesday(year, mon).isoformat()}")

    if classify:
        day = _parse_day(classify)
        governing = latest_patch_tuesday(day)
        offset = (day - governing).days
        click.echo(
            f"{day.isoformat()}: {classify_release(day).value} "
            f"({offset} day(s) after Patch Tuesday {governing.isoformat()}; "
            f"next {next_patch_tuesday(day).isoformat()})"
        )


if __name__ == "__main__":
    main()
