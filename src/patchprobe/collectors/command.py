"""Generic subprocess runner for non-PowerShell commands."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass


@dataclass
class CommandResult:
    """Result of a subprocess command execution."""
    success: bool
    stdout: str
    stderr: str
    return_code: int


def run_cmd(
    args: list[str],
    timeout: int = 60,
    encoding: str = "utf-8",
) -> CommandResult:
    """Execute a command and return structured result.

    Args:
        args: Command and arguments list.
        timeout: Timeout in seconds.
        encoding: Output encoding.

    Returns:
        CommandResult with stdout, stderr, return code, and success flag.
    """
    try:
        proc = subprocess.run(
            args,
            capture_output=True,
            timeout=timeout,
            text=True,
            encoding=encoding,
            errors="replace",
        )
        return CommandResult(
            success=proc.returncode == 0,
            stdout=proc.stdout,
            stderr=proc.stderr,
            return_code=proc.returncode,
        )
    except subprocess.TimeoutExpired:
        return CommandResult(
            success=False,
            stdout="",
            stderr=f"Command timed out after {timeout} seconds",
            return_code=-1,
        )
    except FileNotFoundError:
        return CommandResult(
            success=False,
            stdout="",
            stderr=f"Command not found: {args[0] if args else '(empty)'}",
            return_code=-1,
        )
    except OSError as e:
        return CommandResult(
            success=False,
            stdout="",
            stderr=f"OS error executing command: {e}",
            return_code=-1,
        )


def applied_computer_gpos(timeout: int = 60) -> list[str]:
    """Return the names of Group Policy Objects applied to the computer.

    Parses the "Applied Group Policy Objects" block of
    ``gpresult /r /scope computer``. Returns an empty list when gpresult
    is unavailable or fails (it needs elevation on most builds).
    """
    result = run_cmd(["gpresult", "/r", "/scope", "computer"], timeout=timeout)
    if not result.success:
        return []
    return parse_gpresult_applied(result.stdout)


def parse_gpresult_applied(text: str) -> list[str]:
    """Extract GPO names listed under "Applied Group Policy Objects"."""
    names: list[str] = []
    header_indent: int | None = None
    for line in text.expandtabs(4).splitlines():
        stripped = line.strip()
        indent = len(line) - len(line.lstrip())
        if header_indent is None:
            if stripped.startswith("Applied Group Policy Objects"):
                header_indent = indent
            continue
        if not stripped:
            if names:
                break
            continue
        if set(stripped) == {"-"}:
            continue
        # Entries are indented deeper than their section header
        if indent <= header_indent:
            break
        names.append(stripped)
    return names
