"""Tests for the probe discovery engine."""

from __future__ import annotations

import sys

import pytest

from patchprobe.config import Config
from patchprobe.engine import Engine, UnknownCheckError
from patchprobe.models import Category

ALL_CHECK_IDS = ["WU-001", "MGMT-001", "PATCH-001"]


class TestEngineDiscovery:
    def test_discover_finds_all_probes_in_category_order(self):
        checks = Engine(Config()).discover_checks()
        assert [c.CHECK_ID for c in checks] == ALL_CHECK_IDS

    def test_discover_deduplicates_by_check_id(self):
        ids = [c.CHECK_ID for c in Engine(Config()).discover_checks()]
        assert len(ids) == len(set(ids)), f"Duplicate CHECK_IDs found: {ids}"

    def test_discover_filters_disabled_checks(self):
        checks = Engine(Config(disabled_checks=["MGMT-001"])).discover_checks()
        assert [c.CHECK_ID for c in checks] == ["WU-001", "PATCH-001"]

    def test_discover_filters_by_category(self):
        checks = Engine(Config(enabled_categories=["Patch Compliance"])).discover_checks()
        assert [c.CHECK_ID for c in checks] == ["PATCH-001"]
        assert checks[0].CATEGORY == Category.PATCHING

    def test_discover_skips_admin_checks(self):
        checks = Engine(Config(skip_admin_checks=True)).discover_checks()
        for check in checks:
            assert not check.REQUIRES_ADMIN, f"{check.CHECK_ID} requires admin but was not skipped"

    def test_per_check_config_is_passed(self):
        config = Config(check_configs={"PATCH-001": {"grace_days": 3}})
        checks = {c.CHECK_ID: c for c in Engine(config).discover_checks()}
        assert checks["PATCH-001"].config["grace_days"] == 3
        assert checks["PATCH-001"].config["web_lookup"] is False
        assert checks["WU-001"].config["stale_days"] == 35

    def test_list_checks_returns_metadata(self):
        checks_info = Engine(Config()).list_checks()
        assert [c["check_id"] for c in checks_info] == ALL_CHECK_IDS
        first = checks_info[0]
        assert first["name"] == "Windows Update Health"
        assert first["category"] == "Update Health"
        assert "requires_admin" in first
        assert first["description"]


class TestEngineRun:
    def test_run_produces_report(self):
        engine = Engine(Config())
        engine.discover_checks()
        report = engine.run(show_progress=False)
        assert report.hostname
        assert report.os_version
        assert report.scan_start <= report.scan_end
        assert [r.check_id for r in report.results] == ALL_CHECK_IDS
        assert isinstance(report.summary, dict)

    @pytest.mark.skipif(sys.platform == "win32", reason="Probes run for real on Windows")
    def test_non_windows_results_are_skipped_with_status_line(self):
        report = Engine(Config()).run(show_progress=False)
        for result in report.results:
            assert result.status == "skipped"
            assert result.status_line == f"{result.check_name}: SKIPPED - Not running on Windows"
        assert report.has_critical_findings() is False

    @pytest.mark.skipif(sys.platform == "win32", reason="Probes run for real on Windows")
    def test_run_check_ignores_category_filter(self):
        engine = Engine(Config(enabled_categories=["Management"]))
        result = engine.run_check("patch-001")
        assert result.check_id == "PATCH-001"
        assert result.status == "skipped"

    def test_run_check_unknown_id(self):
        with pytest.raises(UnknownCheckError):
            Engine(Config()).run_check("NOPE-999")

    def test_execute_turns_exceptions_into_error_results(self, monkeypatch):
        from patchprobe.checks import base
        from patchprobe.checks.update_health import UpdateHealthCheck

        def boom(self):
            raise RuntimeError("registry exploded")

        monkeypatch.setattr(base, "is_windows", lambda: True)
        monkeypatch.setattr(UpdateHealthCheck, "run", boom)
        result = Engine(Config()).run_check("WU-001")
        assert result.status == "error"
        assert result.error_message == "RuntimeError: registry exploded"
        assert result.status_line == "Windows Update Health: ERROR - RuntimeError: registry exploded"
