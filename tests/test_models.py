"""Tests for Pydantic models -- validation, serialization, deserialization."""

from __future__ import annotations

import json
from datetime import date, datetime, timezone

from patchprobe.models import (
    CATEGORY_ORDER,
    Category,
    CheckResult,
    KbRelease,
    ManagementState,
    ProbeReport,
    ReleaseType,
    ServiceState,
    Severity,
    SEVERITY_ORDER,
)


class TestSeverity:
    def test_severity_values(self):
        assert Severity.CRITICAL.value == "CRITICAL"
        assert Severity.HIGH.value == "HIGH"
        assert Severity.MEDIUM.value == "MEDIUM"
        assert Severity.LOW.value == "LOW"
        assert Severity.INFO.value == "INFO"

    def test_severity_ordering(self):
        assert SEVERITY_ORDER[Severity.CRITICAL] < SEVERITY_ORDER[Severity.HIGH]
        assert SEVERITY_ORDER[Severity.HIGH] < SEVERITY_ORDER[Severity.MEDIUM]
        assert SEVERITY_ORDER[Severity.MEDIUM] < SEVERITY_ORDER[Severity.LOW]
        assert SEVERITY_ORDER[Severity.LOW] < SEVERITY_ORDER[Severity.INFO]


class TestCategory:
    def test_all_categories_present(self):
        actual = {cat.value for cat in Category}
        assert actual == {"Update Health", "Management", "Patch Compliance", "Meta"}

    def test_category_order_follows_declaration(self):
        assert CATEGORY_ORDER[Category.UPDATE_HEALTH] < CATEGORY_ORDER[Category.MANAGEMENT]
        assert CATEGORY_ORDER[Category.MANAGEMENT] < CATEGORY_ORDER[Category.PATCHING]


class TestServiceState:
    def test_missing_service_is_neither_running_nor_disabled(self):
        state = ServiceState(name="wuauserv")
        assert state.present is False
        assert state.running is False
        assert state.disabled is False

    def test_running_is_case_insensitive(self):
        state = ServiceState(name="BITS", present=True, status="Running", start_type="Manual")
        assert state.running is True
        assert state.disabled is False

    def test_disabled_start_type(self):
        state = ServiceState(name="wuauserv", present=True, status="stopped", start_type="disabled")
        assert state.disabled is True
        assert state.running is False


class TestManagementState:
    def test_defaults_are_unmanaged(self, standalone_state):
        assert standalone_state.wsus_enabled is False
        assert standalone_state.mdm_enrolled is False
        assert standalone_state.wufb_deferrals is False

    def test_wsus_enabled_needs_server_and_flag(self):
        assert ManagementState(use_wu_server=1).wsus_enabled is False
        assert ManagementState(wsus_server="http://wsus:8530").wsus_enabled is False
        assert ManagementState(use_wu_server=1, wsus_server="http://wsus:8530").wsus_enabled is True

    def test_zero_deferral_is_not_a_deferral(self):
        state = ManagementState(wufb_policies={"DeferQualityUpdates": 0, "TargetReleaseVersion": None})
        assert state.wufb_deferrals is False
        state = ManagementState(wufb_policies={"DeferQualityUpdatesPeriodInDays": 7})
        assert state.wufb_deferrals is True


class TestKbRelease:
    def test_defaults(self):
        release = KbRelease(kb="KB5046633", released=date(2024, 11, 12))
        assert release.builds == []
        assert release.release_type == ReleaseType.UNKNOWN

    def test_release_type_values(self):
        assert ReleaseType("Out-of-Band") is ReleaseType.OUT_OF_BAND
        assert ReleaseType.PREVIEW.value == "Preview"


class TestCheckResult:
    def test_check_result_creation(self, sample_check_result):
        assert sample_check_result.check_id == "TEST-001"
        assert sample_check_result.status == "high"
        assert len(sample_check_result.findings) == 1
        assert sample_check_result.status_line.startswith("Test Check:")

    def test_check_result_defaults(self):
        result = CheckResult(
            check_id="X-001",
            check_name="X",
            category=Category.META,
            status="passed",
        )
        assert result.findings == []
        assert result.context == {}
        assert result.error_message is None
        assert result.status_line == ""


class TestProbeReport:
    def _report(self, results) -> ProbeReport:
        now = datetime.now(timezone.utc)
        return ProbeReport(
            hostname="WS-0042",
            os_version="Windows 11 Pro 23H2 (Build 22631.4460)",
            scan_start=now,
            scan_end=now,
            results=results,
        )

    def test_compute_summary_counts_by_severity(self, sample_check_result):
        report = self._report([sample_check_result])
        summary = report.compute_summary()
        assert summary["HIGH"] == 1
        assert summary["CRITICAL"] == 0
        assert set(summary) == {s.value for s in Severity}

    def test_has_critical_findings(self, sample_check_result):
        report = self._report([sample_check_result])
        report.compute_summary()
        assert report.has_critical_findings() is False

        sample_check_result.findings[0].severity = Severity.CRITICAL
        report.compute_summary()
        assert report.has_critical_findings() is True

    def test_json_round_trip(self, sample_check_result):
        report = self._report([sample_check_result])
        report.compute_summary()
        data = json.loads(report.model_dump_json())
        assert data["hostname"] == "WS-0042"
        assert data["results"][0]["status_line"] == "Test Check: HIGH - one finding"

        restored = ProbeReport.model_validate(data)
        assert restored.report_id == report.report_id
        assert restored.results[0].findings[0].severity == Severity.HIGH
