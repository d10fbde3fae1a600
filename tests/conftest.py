"""Shared test fixtures and platform-conditional helpers."""

from __future__ import annotations

import sys
from datetime import date

import pytest

from patchprobe.config import Config
from patchprobe.models import (
    Category,
    CheckResult,
    Finding,
    Hotfix,
    ManagementState,
    ServiceState,
    Severity,
)

# Platform skip markers
windows_only = pytest.mark.skipif(
    sys.platform != "win32",
    reason="Test requires Windows",
)


@pytest.fixture
def default_config() -> Config:
    """Return a default Config instance."""
    return Config()


@pytest.fixture
def sample_finding() -> Finding:
    """Return a sample Finding for testing."""
    return Finding(
        check_id="TEST-001",
        title="Test Finding",
        description="A test finding for unit tests",
        severity=Severity.HIGH,
        category=Category.PATCHING,
        affected_item="test_item",
        evidence="test evidence data",
        recommendation="Fix the test issue",
        references=["https://example.com/test"],
    )


@pytest.fixture
def sample_check_result(sample_finding: Finding) -> CheckResult:
    """Return a sample CheckResult for testing."""
    return CheckResult(
        check_id="TEST-001",
        check_name="Test Check",
        category=Category.PATCHING,
        status="high",
        duration_seconds=1.5,
        findings=[sample_finding],
        status_line="Test Check: HIGH - one finding",
    )


@pytest.fixture
def healthy_services() -> dict[str, ServiceState]:
    """Every Windows Update dependency present, running and on automatic/manual start."""
    return {
        name: ServiceState(name=name, display_name=name, present=True, status="running", start_type="manual")
        for name in ("wuauserv", "BITS", "UsoSvc", "CryptSvc", "TrustedInstaller", "WaaSMedicSvc")
    }


@pytest.fixture
def recent_hotfixes() -> list[Hotfix]:
    """Hotfix list whose newest entry is the November 2024 Windows 11 cumulative."""
    return [
        Hotfix(kb="KB5044285", description="Security Update", installed_on=date(2024, 10, 9)),
        Hotfix(kb="KB5046633", description="Security Update", installed_on=date(2024, 11, 13)),
        Hotfix(kb="KB5045935", description="Update", installed_on=None),
    ]


@pytest.fixture
def standalone_state() -> ManagementState:
    """A workgroup machine with no WSUS, SCCM, or MDM."""
    return ManagementState()
