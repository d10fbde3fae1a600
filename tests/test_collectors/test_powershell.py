"""Tests for the PowerShell runner and its JSON normalization."""

from __future__ import annotations

from patchprobe.collectors import powershell
from patchprobe.collectors.powershell import as_list, run_ps


class TestAsList:
    def test_single_object(self):
        assert as_list({"HotFixID": "KB5046633"}) == [{"HotFixID": "KB5046633"}]

    def test_list_filters_non_dicts(self):
        assert as_list([{"a": 1}, "stray", None, {"b": 2}]) == [{"a": 1}, {"b": 2}]

    def test_other_values(self):
        assert as_list(None) == []
        assert as_list("text") == []


class TestRunPs:
    def test_no_powershell(self, monkeypatch):
        monkeypatch.setattr(powershell, "get_powershell_path", lambda: None)
        result = run_ps("Get-HotFix")
        assert result.success is False
        assert "not found" in result.error
