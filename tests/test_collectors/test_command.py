"""Tests for the generic command runner collector and gpresult parsing."""

from __future__ import annotations

import sys

import pytest

from patchprobe.collectors import command
from patchprobe.collectors.command import (
    CommandResult,
    applied_computer_gpos,
    parse_gpresult_applied,
    run_cmd,
)

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="Uses POSIX commands")

GPRESULT_OUTPUT = """
Microsoft (R) Windows (R) Operating System Group Policy Result tool v2.0
(c) Microsoft Corporation. All rights reserved.

RSOP data for  on WS-0042 : Logging Mode
-----------------------------------------

OS Configuration:            Member Workstation
OS Version:                  10.0.22631

COMPUTER SETTINGS
------------------
    CN=WS-0042,OU=Workstations,DC=corp,DC=example,DC=com
    Last time Group Policy was applied: 11/20/2024 at 9:14:02 AM

    Applied Group Policy Objects
    -----------------------------
        WSUS - Workstations
        Security Baseline 23H2
        Default Domain Policy

    The following GPOs were not applied because they were filtered out
    -------------------------------------------------------------------
        Local Group Policy
            Filtering:  Not Applied (Empty)
"""


@posix_only
class TestRunCmd:
    def test_successful_command(self):
        result = run_cmd(["echo", "hello"])
        assert result.success is True
        assert "hello" in result.stdout
        assert result.return_code == 0

    def test_failing_command(self):
        result = run_cmd(["false"])
        assert result.success is False
        assert result.return_code != 0

    def test_command_not_found(self):
        result = run_cmd(["nonexistent_command_xyz123"])
        assert result.success is False
        assert "Command not found" in result.stderr

    def test_command_timeout(self):
        result = run_cmd(["sleep", "10"], timeout=1)
        assert result.success is False
        assert "timed out" in result.stderr.lower()

    def test_command_result_fields(self):
        result = run_cmd(["echo", "test"])
        assert isinstance(result, CommandResult)
        assert isinstance(result.stdout, str)
        assert isinstance(result.return_code, int)


class TestParseGpresult:
    def test_applied_block(self):
        assert parse_gpresult_applied(GPRESULT_OUTPUT) == [
            "WSUS - Workstations",
            "Security Baseline 23H2",
            "Default Domain Policy",
        ]

    def test_tab_indented_block(self):
        text = "\tApplied Group Policy Objects\n\t----------------\n\t\tLocal Policy\n\tOther section\n"
        assert parse_gpresult_applied(text) == ["Local Policy"]

    def test_missing_block(self):
        assert parse_gpresult_applied("ERROR: Access denied.\n") == []

    def test_empty_block(self):
        text = "    Applied Group Policy Objects\n    ----------------\n        N/A\n\n"
        assert parse_gpresult_applied(text) == ["N/A"]


class TestAppliedComputerGpos:
    def test_failure_returns_empty(self, monkeypatch):
        monkeypatch.setattr(
            command, "run_cmd",
            lambda args, timeout=60: CommandResult(False, "", "Command not found: gpresult", -1),
        )
        assert applied_computer_gpos() == []

    def test_success_is_parsed(self, monkeypatch):
        monkeypatch.setattr(
            command, "run_cmd",
            lambda args, timeout=60: CommandResult(True, GPRESULT_OUTPUT, "", 0),
        )
        assert "Default Domain Policy" in applied_computer_gpos()
