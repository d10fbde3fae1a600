"""Core Pydantic models for patchprobe."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INFO = "INFO"


SEVERITY_ORDER = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
    Severity.INFO: 4,
}


class Category(str, Enum):
    UPDATE_HEALTH = "Update Health"
    MANAGEMENT = "Management"
    PATCHING = "Patch Compliance"
    META = "Meta"


CATEGORY_ORDER = {cat: i for i, cat in enumerate(Category)}


class ReleaseType(str, Enum):
    SECURITY = "Security"
    PREVIEW = "Preview"
    OUT_OF_BAND = "Out-of-Band"
    UNKNOWN = "Unknown"


class ServiceState(BaseModel):
    """Snapshot of one Windows service."""
    name: str
    display_name: str = ""
    present: bool = False
    status: str = ""  # e.g. "running", "stopped"
    start_type: str = ""  # e.g. "automatic", "manual", "disabled"

    @property
    def running(self) -> bool:
        return self.present and self.status.lower() == "running"

    @property
    def disabled(self) -> bool:
        return self.present and self.start_type.lower() == "disabled"


class Hotfix(BaseModel):
    kb: str
    description: str = ""
    installed_on: date | None = None
    installed_by: str = ""


class KbRelease(BaseModel):
    kb: str
    released: date
    builds: list[str] = Field(default_factory=list)  # e.g. ["22621.4460", "22631.4460"]
    release_type: ReleaseType = ReleaseType.UNKNOWN
    title: str = ""


class ManagementState(BaseModel):
    """Who manages Windows Update on this host, as read from policy and services."""
    wsus_server: str | None = None
    wsus_status_server: str | None = None
    use_wu_server: int | None = None
    wufb_policies: dict[str, int | str | None] = Field(default_factory=dict)
    disable_dual_scan: int | None = None
    policy_driven_source: int | None = None
    disable_wu_access: int | None = None
    sccm_installed: bool = False
    sccm_service: ServiceState | None = None
    co_management_flags: int | None = None
    mdm_providers: list[str] = Field(default_factory=list)
    mdm_update_policies: dict[str, int | str | None] = Field(default_factory=dict)
    mdm_wins_over_gp: int | None = None
    applied_gpos: list[str] = Field(default_factory=list)

    @property
    def wsus_enabled(self) -> bool:
        return self.use_wu_server == 1 and bool(self.wsus_server)

    @property
    def mdm_enrolled(self) -> bool:
        return bool(self.mdm_providers)

    @property
    def wufb_deferrals(self) -> bool:
        return any(v not in (None, 0, "") for v in self.wufb_policies.values())


class Finding(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    check_id: str
    title: str
    description: str
    severity: Severity
    category: Category
    affected_item: str
    evidence: str
    recommendation: str
    references: list[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CheckResult(BaseModel):
    check_id: str
    check_name: str
    category: Category
    status: str  # "passed", "medium", "high", "critical", "error", "skipped"
    duration_seconds: float = 0.0
    findings: list[Finding] = Field(default_factory=list)
    context: dict = Field(default_factory=dict)
    error_message: str | None = None
    status_line: str = ""


class ProbeReport(BaseModel):
    report_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    hostname: str
    os_version: str
    scan_start: datetime
    scan_end: datetime
    results: list[CheckResult] = Field(default_factory=list)
    summary: dict = Field(default_factory=dict)

    def compute_summary(self) -> dict:
        """Compute finding counts by severity."""
        counts: dict[str, int] = {s.value: 0 for s in Severity}
        for result in self.results:
            for finding in result.findings:
                counts[finding.severity.value] += 1
        self.summary = counts
        return counts

    def has_critical_findings(self) -> bool:
        return self.summary.get(Severity.CRITICAL.value, 0) > 0
