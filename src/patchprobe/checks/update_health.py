"""WU-001: Windows Update health.

Verifies that the services Windows Update depends on are usable, that
Group Policy has not switched automatic updates off or cut the client
off from its update source, whether a reboot is pending, and how long
ago the last update was installed.
"""

from __future__ import annotations

from datetime import date

from patchprobe.checks.base import BaseCheck
from patchprobe.collectors import hotfixes, registry, services
from patchprobe.models import Category, Finding, ServiceState, Severity

_WU_POLICY_PATH = r"SOFTWARE\Policies\Microsoft\Windows\WindowsUpdate"
_AU_POLICY_PATH = _WU_POLICY_PATH + r"\AU"

# (registry path, value name) read into the policy mapping
_POLICY_VALUES: list[tuple[str, str]] = [
    (_AU_POLICY_PATH, "NoAutoUpdate"),
    (_AU_POLICY_PATH, "AUOptions"),
    (_AU_POLICY_PATH, "UseWUServer"),
    (_WU_POLICY_PATH, "DisableWindowsUpdateAccess"),
    (_WU_POLICY_PATH, "SetDisableUXWUAccess"),
    (_WU_POLICY_PATH, "DoNotConnectToWindowsUpdateInternetLocations"),
]

_REBOOT_KEYS = [
    r"SOFTWARE\Microsoft\Windows\CurrentVersion\WindowsUpdate\Auto Update\RebootRequired",
    r"SOFTWARE\Microsoft\Windows\CurrentVersion\Component Based Servicing\RebootPending",
]

_AU_OPTIONS: dict[int, str] = {
    1: "Automatic Updates disabled",
    2: "Notify for download and notify for install",
    3: "Auto download and notify for install",
    4: "Auto download and schedule the install",
    5: "Local admin chooses setting",
    7: "Auto download, notify to install, notify to restart",
}

# Service name -> expected state. "running" must be running, "enabled"
# must exist and not be disabled, "present" must merely exist.
DEFAULT_SERVICES: dict[str, str] = {
    "wuauserv": "enabled",
    "BITS": "enabled",
    "UsoSvc": "enabled",
    "CryptSvc": "running",
    "TrustedInstaller": "enabled",
    "WaaSMedicSvc": "present",
}

_WU_REFERENCE = "https://learn.microsoft.com/en-us/windows/deployment/update/waas-wu-settings"


def service_problem(state: ServiceState, expected: str) -> str | None:
    """Return a short description of how a service misses its expected state."""
    if not state.present:
        return "missing"
    if expected in ("enabled", "running") and state.disabled:
        return "disabled"
    if expected == "running" and not state.running:
        return state.status or "not running"
    return None


class UpdateHealthCheck(BaseCheck):
    """Assess Windows Update services, policy and patch recency."""

    CHECK_ID = "WU-001"
    NAME = "Windows Update Health"
    DESCRIPTION = (
        "Checks the Windows Update service chain, automatic-update Group "
        "Policy values, pending reboots and the age of the most recently "
        "installed update."
    )
    CATEGORY = Category.UPDATE_HEALTH
    DEFAULTS = {
        "stale_days": 35,
        "critical_days": 90,
        "services": DEFAULT_SERVICES,
    }

    today: date | None = None

    def run(self) -> list[Finding]:
        findings: list[Finding] = []

        self._check_services(findings)
        self._check_policies(findings)
        self._check_reboot(findings)
        self._check_last_update(findings)

        return findings

    def _check_services(self, findings: list[Finding]) -> None:
        expected: dict[str, str] = self.config["services"]
        states = services.get_services(list(expected))

        problems: dict[str, str] = {}
        for name, want in expected.items():
            state = states.get(name) or ServiceState(name=name)
            problem = service_problem(state, want)
            if problem is None:
                continue
            problems[name] = problem

            if name == "wuauserv" and problem in ("missing", "disabled"):
                severity = Severity.CRITICAL
            elif want == "present":
                severity = Severity.MEDIUM
            else:
                severity = Severity.HIGH

            findings.append(self.finding(
                title=f"Service {name} is {problem}",
                description=(
                    f"The {state.display_name or name} service is {problem} "
                    f"(expected: {want}). Windows Update cannot scan, download "
                    "or install updates reliably without it."
                ),
                severity=severity,
                affected_item=name,
                evidence=(
                    f"Service: {name}\n"
                    f"Present: {state.present}\n"
                    f"Status: {state.status or 'n/a'}\n"
                    f"Start Type: {state.start_type or 'n/a'}"
                ),
                recommendation=(
                    f"Restore the {name} service to its default start type: "
                    f"Set-Service {name} -StartupType Manual; Start-Service {name}"
                ),
                references=[
                    "https://learn.microsoft.com/en-us/windows/deployment/update/how-windows-update-works",
                ],
            ))

        self.context["services"] = {
            name: {
                "present": states[name].present,
                "status": states[name].status,
                "start_type": states[name].start_type,
            }
            for name in expected
            if name in states
        }
        self.context["service_problems"] = problems
        self.context["service_total"] = len(expected)

    def _check_policies(self, findings: list[Finding]) -> None:
        policies: dict[str, int | None] = {
            name: registry.read_int(registry.HKEY_LOCAL_MACHINE, path, name)
            for path, name in _POLICY_VALUES
        }
        self.context["policies"] = policies

        evidence = "\n".join(
            f"{name}: {'Not configured' if value is None else value}"
            for name, value in policies.items()
        )

        auto_update = "enabled"
        if policies["NoAutoUpdate"] == 1 or policies["AUOptions"] == 1:
            auto_update = "disabled by policy"
            findings.append(self.finding(
                title="Automatic updates are disabled by policy",
                description=(
                    "Group Policy disables Automatic Updates (NoAutoUpdate=1 or "
                    "AUOptions=1). The client will not check for, download or "
                    "install updates on its own."
                ),
                severity=Severity.HIGH,
                affected_item="Auto-Update Policy",
                evidence=evidence,
                recommendation=(
                    "Remove the NoAutoUpdate policy or set AUOptions to 3 or 4 "
                    "unless another agent installs updates on a schedule."
                ),
                references=[_WU_REFERENCE],
            ))
        elif policies["AUOptions"] == 2:
            auto_update = "notify only"
            findings.append(self.finding(
                title="Automatic updates set to notify only",
                description=(
                    f"AUOptions=2 ({_AU_OPTIONS[2]}). Updates are neither "
                    "downloaded nor installed until a user acts on the prompt."
                ),
                severity=Severity.LOW,
                affected_item="Auto-Update Policy",
                evidence=evidence,
                recommendation="Set AUOptions to 3 or 4 so updates download automatically.",
                references=[_WU_REFERENCE],
            ))
        elif policies["AUOptions"] is not None:
            option = policies["AUOptions"]
            auto_update = f"enabled ({_AU_OPTIONS.get(option, f'AUOptions={option}')})"
        self.context["auto_update"] = auto_update

        if policies["DisableWindowsUpdateAccess"] == 1:
            findings.append(self.finding(
                title="Access to Windows Update features is removed",
                description=(
                    "DisableWindowsUpdateAccess=1 removes the user's access to "
                    "scan, download and install from Windows Update."
                ),
                severity=Severity.MEDIUM,
                affected_item="DisableWindowsUpdateAccess",
                evidence=evidence,
                recommendation="Confirm a managed update source (WSUS or SCCM) delivers updates instead.",
                references=[_WU_REFERENCE],
            ))

        if policies["SetDisableUXWUAccess"] == 1:
            findings.append(self.finding(
                title="Windows Update settings page is hidden",
                description="SetDisableUXWUAccess=1 removes the 'Pause updates' and scan controls from Settings.",
                severity=Severity.INFO,
                affected_item="SetDisableUXWUAccess",
                evidence=evidence,
                recommendation="No action needed when updates are centrally managed.",
            ))

        if (
            policies["DoNotConnectToWindowsUpdateInternetLocations"] == 1
            and policies["UseWUServer"] != 1
        ):
            findings.append(self.finding(
                title="Client is blocked from Windows Update with no WSUS server",
                description=(
                    "DoNotConnectToWindowsUpdateInternetLocations=1 blocks "
                    "Microsoft's public update endpoints, but UseWUServer is not "
                    "enabled. The client has no update source."
                ),
                severity=Severity.HIGH,
                affected_item="DoNotConnectToWindowsUpdateInternetLocations",
                evidence=evidence,
                recommendation="Point the client at a WSUS server or remove the policy.",
                references=[_WU_REFERENCE],
            ))

    def _check_reboot(self, findings: list[Finding]) -> None:
        pending = [
            path for path in _REBOOT_KEYS
            if registry.key_exists(registry.HKEY_LOCAL_MACHINE, path)
        ]
        self.context["reboot_pending"] = bool(pending)
        if pending:
            findings.append(self.finding(
                title="Reboot pending to finish installing updates",
                description=(
                    "Updates have been staged but will not take effect until "
                    "the system restarts."
                ),
                severity=Severity.MEDIUM,
                affected_item="Pending Reboot",
                evidence="\n".join(f"HKLM\\{p}" for p in pending),
                recommendation="Restart the system at the next maintenance window.",
            ))

    def _check_last_update(self, findings: list[Finding]) -> None:
        installed = hotfixes.installed_hotfixes()
        latest = hotfixes.most_recent(installed)
        self.context["hotfix_count"] = len(installed)

        if latest is None:
            self.context["days_since_update"] = None
            findings.append(self.finding(
                title="Unable to determine last update date",
                description=(
                    f"{len(installed)} hotfix record(s) found but none carry an "
                    "installation date. Update recency cannot be assessed."
                ),
                severity=Severity.HIGH,
                affected_item="Installed Hotfixes",
                evidence=f"Hotfix records: {len(installed)}",
                recommendation="Run Get-HotFix manually and check Settings > Update history.",
            ))
            return

        today = self.today or date.today()
        days = (today - latest.installed_on).days
        self.context["days_since_update"] = days
        self.context["last_update_kb"] = latest.kb
        evidence = (
            f"Most recent: {latest.kb} installed {latest.installed_on.isoformat()}\n"
            f"Hotfix records: {len(installed)}"
        )

        critical_days = int(self.config["critical_days"])
        stale_days = int(self.config["stale_days"])
        if days >= critical_days:
            severity = Severity.CRITICAL
        elif days >= stale_days:
            severity = Severity.HIGH
        else:
            return

        findings.append(self.finding(
            title=f"No update installed in {days} days",
            description=(
                f"The most recent update ({latest.kb}) was installed {days} days "
                f"ago on {latest.installed_on.isoformat()}. Monthly security "
                "releases have been missed."
            ),
            severity=severity,
            affected_item="Installed Hotfixes",
            evidence=evidence,
            recommendation=(
                "Run Windows Update and investigate why updates stopped "
                "installing (policy, services, disk space)."
            ),
            references=[
                "https://learn.microsoft.com/en-us/windows/deployment/update/best-practices-for-update-management",
            ],
        ))

    def summarize(self, findings: list[Finding]) -> str:
        actionable = [f for f in findings if f.severity not in (Severity.INFO, Severity.LOW)]
        if not actionable:
            state = "HEALTHY"
        elif any(f.severity in (Severity.HIGH, Severity.CRITICAL) for f in actionable):
            state = "UNHEALTHY"
        else:
            state = "DEGRADED"

        parts: list[str] = []
        problems: dict[str, str] = self.context.get("service_problems", {})
        total = self.context.get("service_total", 0)
        if problems:
            parts.append("services: " + ", ".join(f"{n} {p}" for n, p in problems.items()))
        else:
            parts.append(f"services ok ({total}/{total})")

        parts.append(f"auto-update {self.context.get('auto_update', 'unknown')}")

        if self.context.get("reboot_pending"):
            parts.append("reboot pending")

        days = self.context.get("days_since_update")
        if days is None:
            parts.append("last update unknown")
        else:
            parts.append(f"last update {days} days ago ({self.context.get('last_update_kb')})")

        return f"Windows Update: {state} - " + "; ".join(parts)
