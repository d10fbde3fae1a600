"""MGMT-001: Update management conflicts.

Works out which authorities steer Windows Update on this host (Group
Policy/WSUS, Windows Update for Business deferrals, the SCCM client,
MDM enrollment) and flags combinations known to fight each other:
dual scan, SCCM without its software update point policy, SCCM and MDM
both managing updates without co-management, and GPO/MDM disagreeing
on the same setting.
"""

from __future__ import annotations

from dataclasses import dataclass

from patchprobe.checks.base import BaseCheck
from patchprobe.collectors import command, registry, services
from patchprobe.models import Category, Finding, ManagementState, Severity

_WU_POLICY_PATH = r"SOFTWARE\Policies\Microsoft\Windows\WindowsUpdate"
_AU_POLICY_PATH = _WU_POLICY_PATH + r"\AU"
_CCM_PATH = r"SOFTWARE\Microsoft\CCM"
_ENROLLMENTS_PATH = r"SOFTWARE\Microsoft\Enrollments"
_MDM_UPDATE_PATH = r"SOFTWARE\Microsoft\PolicyManager\current\device\Update"
_MDM_CONFLICT_PATH = r"SOFTWARE\Microsoft\PolicyManager\current\device\ControlPolicyConflict"

WUFB_POLICIES = [
    "DeferQualityUpdates",
    "DeferQualityUpdatesPeriodInDays",
    "DeferFeatureUpdates",
    "DeferFeatureUpdatesPeriodInDays",
    "TargetReleaseVersion",
    "TargetReleaseVersionInfo",
]

# GPO value name -> Update CSP value name for settings both channels set.
# The GPO TargetReleaseVersion is only an enable flag (1); its version string
# is TargetReleaseVersionInfo, which the CSP stores as TargetReleaseVersion.
GPO_TO_MDM_SETTINGS = {
    "DeferQualityUpdatesPeriodInDays": "DeferQualityUpdatesPeriodInDays",
    "DeferFeatureUpdatesPeriodInDays": "DeferFeatureUpdatesPeriodInDays",
    "TargetReleaseVersionInfo": "TargetReleaseVersion",
}

# CoManagementFlags bit set when the Windows Update workload is moved to Intune
WU_WORKLOAD_FLAG = 16

_DUAL_SCAN_REF = "https://learn.microsoft.com/en-us/windows/deployment/update/wufb-wsus"
_COMANAGEMENT_REF = "https://learn.microsoft.com/en-us/mem/configmgr/comanage/workloads"


@dataclass
class Conflict:
    """One management conflict: short label for the status line plus detail."""
    label: str
    detail: str
    severity: Severity
    affected_item: str
    recommendation: str
    reference: str | None = None


def _read_str(path: str, name: str) -> str | None:
    val = registry.read_value(registry.HKEY_LOCAL_MACHINE, path, name)
    if val is None or val.data in (None, ""):
        return None
    return str(val.data)


def _read_policy(path: str, name: str) -> int | str | None:
    val = registry.read_value(registry.HKEY_LOCAL_MACHINE, path, name)
    if val is None:
        return None
    try:
        return int(val.data)
    except (ValueError, TypeError):
        return str(val.data)


def _mdm_providers() -> list[str]:
    providers: list[str] = []
    for subkey in registry.enumerate_subkeys(registry.HKEY_LOCAL_MACHINE, _ENROLLMENTS_PATH):
        provider = _read_str(f"{_ENROLLMENTS_PATH}\\{subkey}", "ProviderID")
        if provider and provider not in providers:
            providers.append(provider)
    return providers


def _mdm_update_policies() -> dict[str, int | str | None]:
    policies: dict[str, int | str | None] = {}
    for value in registry.read_key(registry.HKEY_LOCAL_MACHINE, _MDM_UPDATE_PATH):
        # Skip bookkeeping values such as "DeferQualityUpdatesPeriodInDays_ProviderSet"
        if "_" in value.name:
            continue
        try:
            policies[value.name] = int(value.data)
        except (ValueError, TypeError):
            policies[value.name] = str(value.data)
    return policies


def collect_state(use_gpresult: bool = True, gpresult_timeout: int = 60) -> ManagementState:
    """Read every management signal into a ManagementState."""
    ccm_service = services.get_service("CcmExec")
    return ManagementState(
        wsus_server=_read_str(_WU_POLICY_PATH, "WUServer"),
        wsus_status_server=_read_str(_WU_POLICY_PATH, "WUStatusServer"),
        use_wu_server=registry.read_int(registry.HKEY_LOCAL_MACHINE, _AU_POLICY_PATH, "UseWUServer"),
        wufb_policies={name: _read_policy(_WU_POLICY_PATH, name) for name in WUFB_POLICIES},
        disable_dual_scan=registry.read_int(registry.HKEY_LOCAL_MACHINE, _WU_POLICY_PATH, "DisableDualScan"),
        policy_driven_source=registry.read_int(
            registry.HKEY_LOCAL_MACHINE, _WU_POLICY_PATH,
            "SetPolicyDrivenUpdateSourceForQualityUpdates",
        ),
        disable_wu_access=registry.read_int(
            registry.HKEY_LOCAL_MACHINE, _WU_POLICY_PATH, "DisableWindowsUpdateAccess",
        ),
        sccm_installed=ccm_service.present or registry.key_exists(registry.HKEY_LOCAL_MACHINE, _CCM_PATH),
        sccm_service=ccm_service,
        co_management_flags=registry.read_int(registry.HKEY_LOCAL_MACHINE, _CCM_PATH, "CoManagementFlags"),
        mdm_providers=_mdm_providers(),
        mdm_update_policies=_mdm_update_policies(),
        mdm_wins_over_gp=registry.read_int(registry.HKEY_LOCAL_MACHINE, _MDM_CONFLICT_PATH, "MDMWinsOverGP"),
        applied_gpos=command.applied_computer_gpos(gpresult_timeout) if use_gpresult else [],
    )


def evaluate_conflicts(state: ManagementState) -> list[Conflict]:
    """Apply the conflict rules to a management state. Pure function."""
    conflicts: list[Conflict] = []
    co_managed = bool(state.co_management_flags)

    if state.use_wu_server == 1 and not state.wsus_server:
        conflicts.append(Conflict(
            label="UseWUServer set without WUServer",
            detail=(
                "UseWUServer=1 tells the client to use WSUS, but no WUServer "
                "URL is configured. Scans fail until a server is set."
            ),
            severity=Severity.HIGH,
            affected_item="WUServer",
            recommendation="Configure WUServer/WUStatusServer or remove UseWUServer.",
        ))

    if (
        state.wsus_enabled
        and state.wufb_deferrals
        and state.disable_dual_scan != 1
        and state.policy_driven_source != 1
    ):
        conflicts.append(Conflict(
            label="dual scan (WSUS + WUfB deferrals)",
            detail=(
                "WSUS is configured alongside Windows Update for Business "
                "deferral policies and neither DisableDualScan nor the "
                "policy-driven update source is set. The client scans "
                "Windows Update directly and bypasses WSUS approvals."
            ),
            severity=Severity.HIGH,
            affected_item="DisableDualScan",
            recommendation=(
                "Set DisableDualScan=1 (older builds) or the "
                "SetPolicyDrivenUpdateSource* policies, or remove the deferrals."
            ),
            reference=_DUAL_SCAN_REF,
        ))

    if state.sccm_installed and state.use_wu_server != 1 and not (
        co_managed and state.co_management_flags & WU_WORKLOAD_FLAG
    ):
        conflicts.append(Conflict(
            label="SCCM client without WSUS policy",
            detail=(
                "The Configuration Manager client is installed, but the local "
                "WSUS policy (UseWUServer) that points the client at its "
                "software update point is not applied."
            ),
            severity=Severity.HIGH,
            affected_item="UseWUServer",
            recommendation=(
                "Check the software update point deployment and that no domain "
                "GPO overrides the ConfigMgr-set WSUS policy."
            ),
        ))

    if state.sccm_installed and state.sccm_service and state.sccm_service.present and not state.sccm_service.running:
        conflicts.append(Conflict(
            label="CcmExec not running",
            detail=(
                f"The SMS Agent Host service (CcmExec) is "
                f"{state.sccm_service.status or 'not running'}. Configuration "
                "Manager cannot deploy or report updates."
            ),
            severity=Severity.HIGH,
            affected_item="CcmExec",
            recommendation="Start the CcmExec service and review CcmExec.log.",
        ))

    if state.sccm_installed and state.mdm_enrolled and not co_managed:
        conflicts.append(Conflict(
            label="SCCM and MDM both manage updates",
            detail=(
                f"The device is MDM-enrolled ({', '.join(state.mdm_providers)}) "
                "and runs the Configuration Manager client without "
                "co-management, so two authorities push update policy."
            ),
            severity=Severity.MEDIUM,
            affected_item="Co-management",
            recommendation="Enable co-management and assign the Windows Update workload to one authority.",
            reference=_COMANAGEMENT_REF,
        ))

    if co_managed and state.co_management_flags & WU_WORKLOAD_FLAG and state.use_wu_server == 1:
        conflicts.append(Conflict(
            label="WU workload in Intune but WSUS policy applied",
            detail=(
                "Co-management moved the Windows Update workload to Intune, "
                "yet the WSUS policy is still applied and keeps the client "
                "scanning against WSUS."
            ),
            severity=Severity.MEDIUM,
            affected_item="CoManagementFlags",
            recommendation="Remove the WSUS GPO for co-managed devices.",
            reference=_COMANAGEMENT_REF,
        ))

    for gp_name, mdm_name in GPO_TO_MDM_SETTINGS.items():
        gp_value = state.wufb_policies.get(gp_name)
        mdm_value = state.mdm_update_policies.get(mdm_name)
        if gp_value is None or mdm_value is None:
            continue
        if str(gp_value).strip().lower() == str(mdm_value).strip().lower():
            continue
        winner = "MDM" if state.mdm_wins_over_gp == 1 else "GPO"
        conflicts.append(Conflict(
            label=f"GPO/MDM disagree on {mdm_name}",
            detail=(
                f"Group Policy sets {gp_name}={gp_value} while MDM sets "
                f"{mdm_name}={mdm_value}. {winner} wins on this device."
            ),
            severity=Severity.MEDIUM,
            affected_item=mdm_name,
            recommendation="Configure the setting from one management channel only.",
        ))

    if state.disable_wu_access == 1 and not state.wsus_enabled and not state.sccm_installed:
        conflicts.append(Conflict(
            label="no update source",
            detail=(
                "DisableWindowsUpdateAccess=1 is set but neither WSUS nor a "
                "Configuration Manager client is present to deliver updates."
            ),
            severity=Severity.HIGH,
            affected_item="DisableWindowsUpdateAccess",
            recommendation="Remove the policy or configure a managed update source.",
        ))

    return conflicts


def describe_authorities(state: ManagementState) -> list[str]:
    """Return the active update authorities, e.g. ["SCCM (co-managed)", "WSUS https://..."]."""
    authorities: list[str] = []
    if state.sccm_installed:
        authorities.append("SCCM (co-managed)" if state.co_management_flags else "SCCM")
    if state.mdm_enrolled:
        authorities.append(f"MDM ({', '.join(state.mdm_providers)})")
    if state.wsus_server and state.use_wu_server == 1:
        authorities.append(f"WSUS {state.wsus_server}")
    if state.wufb_deferrals:
        authorities.append("WUfB")
    return authorities


class ManagementConflictCheck(BaseCheck):
    """Detect conflicting Windows Update management channels."""

    CHECK_ID = "MGMT-001"
    NAME = "Update Management Conflicts"
    DESCRIPTION = (
        "Reads WSUS, Windows Update for Business, Configuration Manager and "
        "MDM signals and flags management combinations that conflict."
    )
    CATEGORY = Category.MANAGEMENT
    DEFAULTS = {"gpresult": True, "gpresult_timeout": 60}

    def run(self) -> list[Finding]:
        state = collect_state(
            use_gpresult=bool(self.config["gpresult"]),
            gpresult_timeout=int(self.config["gpresult_timeout"]),
        )
        conflicts = evaluate_conflicts(state)

        self.context["state"] = state.model_dump()
        self.context["authorities"] = describe_authorities(state)
        self.context["conflicts"] = [c.label for c in conflicts]

        evidence = self._evidence(state)
        return [
            self.finding(
                title=f"Update management conflict: {c.label}",
                description=c.detail,
                severity=c.severity,
                affected_item=c.affected_item,
                evidence=evidence,
                recommendation=c.recommendation,
                references=[c.reference] if c.reference else None,
            )
            for c in conflicts
        ]

    @staticmethod
    def _evidence(state: ManagementState) -> str:
        lines = [
            f"WUServer: {state.wsus_server or 'Not set'}",
            f"UseWUServer: {state.use_wu_server if state.use_wu_server is not None else 'Not set'}",
            f"DisableDualScan: {state.disable_dual_scan if state.disable_dual_scan is not None else 'Not set'}",
            f"SCCM client: {'installed' if state.sccm_installed else 'not installed'}",
            f"CoManagementFlags: {state.co_management_flags if state.co_management_flags is not None else 'Not set'}",
            f"MDM providers: {', '.join(state.mdm_providers) or 'none'}",
        ]
        configured = {k: v for k, v in state.wufb_policies.items() if v is not None}
        if configured:
            lines.append("WUfB (GPO): " + ", ".join(f"{k}={v}" for k, v in configured.items()))
        if state.mdm_update_policies:
            lines.append("Update (MDM): " + ", ".join(
                f"{k}={v}" for k, v in state.mdm_update_policies.items()
            ))
        if state.applied_gpos:
            lines.append("Applied GPOs: " + ", ".join(state.applied_gpos))
        return "\n".join(lines)

    def summarize(self, findings: list[Finding]) -> str:
        authorities = self.context.get("authorities") or ["standalone"]
        conflicts: list[str] = self.context.get("conflicts", [])
        head = f"Management: {', '.join(authorities)}"
        if not conflicts:
            return f"{head}; no conflicts"
        return f"{head}; {len(conflicts)} conflict(s): " + "; ".join(conflicts)
