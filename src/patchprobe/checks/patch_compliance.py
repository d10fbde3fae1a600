"""PATCH-001: Patch compliance.

Classifies every installed KB as a Security, Preview or Out-of-Band
release (by its offset from Patch Tuesday), finds the newest cumulative
release on the host and decides whether the host is current with the
latest Patch Tuesday, allowing a configurable grace period. Optionally
asks the Microsoft support update-history page for the newest KB for
this build.
"""

from __future__ import annotations

from datetime import date

from patchprobe import builds, known_kbs
from patchprobe.checks.base import BaseCheck
from patchprobe.collectors import hotfixes, web
from patchprobe.models import Category, Finding, Hotfix, KbRelease, ReleaseType, Severity
from patchprobe.patch_calendar import latest_patch_tuesday, required_release_date
from patchprobe.platform import get_build, is_server

_CATALOG_URL = "https://www.catalog.update.microsoft.com/Search.aspx?q={kb}"


def classify_installed(installed: list[Hotfix]) -> list[KbRelease]:
    """Return known-table releases for the installed KBs, newest first."""
    releases = []
    for hotfix in installed:
        release = known_kbs.lookup(hotfix.kb)
        if release is not None:
            releases.append(release)
    return sorted(releases, key=lambda r: r.released, reverse=True)


def newest_cumulative(releases: list[KbRelease]) -> KbRelease | None:
    """Return the newest release that is not a preview.

    Cumulative updates supersede earlier ones, so an out-of-band release
    after Patch Tuesday counts as carrying that month's fixes.
    """
    for release in releases:
        if release.release_type != ReleaseType.PREVIEW:
            return release
    return None


def release_for_ubr(
    build: int | None,
    ubr: int | None,
    entries: list[KbRelease] | None = None,
) -> KbRelease | None:
    """Find the release whose build string matches the running build.UBR.

    The known table is searched first, then any update-history entries.
    """
    if build is None or ubr is None:
        return None
    running = f"{build}.{ubr}"
    for release in [*known_kbs.load_known_kbs().values(), *(entries or [])]:
        if running in release.builds:
            return release
    return None


class PatchComplianceCheck(BaseCheck):
    """Decide whether installed updates are current with Patch Tuesday."""

    CHECK_ID = "PATCH-001"
    NAME = "Patch Compliance"
    DESCRIPTION = (
        "Classifies installed KBs as Security, Preview or Out-of-Band "
        "releases, compares the newest cumulative release with the latest "
        "Patch Tuesday, and flags builds past end of servicing."
    )
    CATEGORY = Category.PATCHING
    DEFAULTS = {
        "grace_days": 7,
        "web_lookup": False,
        "request_timeout": 15,
        "update_history_urls": {},
    }

    today: date | None = None

    def run(self) -> list[Finding]:
        findings: list[Finding] = []
        today = self.today or date.today()

        build, ubr = get_build()
        server = is_server()
        self.context["build"] = build
        self.context["ubr"] = ubr
        self.context["server"] = server
        self.context["version"] = builds.version_name(build, server=server)
        self._check_support(findings, build, server, today)

        installed = hotfixes.installed_hotfixes()
        self.context["installed_kbs"] = [h.kb for h in installed]
        online = self._fetch_online(build, server) if self.config["web_lookup"] else None

        releases = classify_installed(installed)
        # Cumulative updates do not always appear in QFE; the running UBR identifies one.
        ubr_release = release_for_ubr(build, ubr, online)
        if ubr_release is not None and ubr_release.kb not in {r.kb for r in releases}:
            releases = sorted([*releases, ubr_release], key=lambda r: r.released, reverse=True)
        self.context["classified"] = {r.kb: r.release_type.value for r in releases}

        grace_days = int(self.config["grace_days"])
        patch_tuesday = latest_patch_tuesday(today)
        required = required_release_date(today, grace_days)
        self.context["patch_tuesday"] = patch_tuesday.isoformat()
        self.context["required_release"] = required.isoformat()

        known_ubr = known_kbs.newest_known_ubr(build)
        newest = newest_cumulative(releases)
        if ubr_release is None and ubr is not None and known_ubr is not None and ubr > known_ubr:
            self._report_ahead_of_table(findings, build, ubr, known_ubr)
        elif newest is None:
            self.context["compliance"] = "UNKNOWN"
            findings.append(self.finding(
                title="No recognised cumulative update installed",
                description=(
                    f"None of the {len(installed)} installed KB(s) match the "
                    "known release table, so patch level cannot be dated."
                ),
                severity=Severity.MEDIUM,
                affected_item="Installed Hotfixes",
                evidence="Installed KBs: " + (", ".join(h.kb for h in installed) or "none"),
                recommendation=(
                    "Refresh the known KB table or enable the web lookup "
                    "(web_lookup: true) to compare against Microsoft's update history."
                ),
            ))
        else:
            self.context["newest_kb"] = newest.kb
            self.context["newest_released"] = newest.released.isoformat()
            self._check_currency(findings, newest, required, patch_tuesday, today)

        if online is not None:
            self._check_latest_online(findings, build, installed, online)

        return findings

    def _check_support(self, findings: list[Finding], build: int | None, server: bool, today: date) -> None:
        supported = builds.is_supported(build, today, server=server)
        self.context["supported"] = supported
        if supported is not False:
            return
        version = builds.version_name(build, server=server)
        last_day = builds.end_of_servicing(build, server=server).isoformat()
        findings.append(self.finding(
            title=f"{version} is past end of servicing",
            description=(
                f"Build {build} ({version}) stopped receiving security "
                f"updates on {last_day}. New vulnerabilities will not be patched."
            ),
            severity=Severity.CRITICAL,
            affected_item="Windows Build",
            evidence=f"Build: {build}\nEdition: {'Server' if server else 'Client'}\nEnd of servicing: {last_day}",
            recommendation="Upgrade to a supported Windows feature release.",
            references=["https://learn.microsoft.com/en-us/lifecycle/products/"],
        ))

    def _report_ahead_of_table(self, findings: list[Finding], build: int, ubr: int, known_ubr: int) -> None:
        self.context["compliance"] = "UNKNOWN"
        self.context["ahead_of_table"] = True
        findings.append(self.finding(
            title="Running build is newer than the known release table",
            description=(
                f"The running build {build}.{ubr} is newer than any release "
                f"the known KB table lists for build {build} (up to "
                f"{build}.{known_ubr}), so patch level cannot be dated."
            ),
            severity=Severity.LOW,
            affected_item="Windows Build",
            evidence=(
                f"Running build: {build}.{ubr}\n"
                f"Newest known: {build}.{known_ubr}\n"
                "Installed KBs: " + (", ".join(self.context["installed_kbs"]) or "none")
            ),
            recommendation=(
                "Refresh the known KB table or enable the web lookup "
                "(web_lookup: true) to date the running build."
            ),
        ))

    def _check_currency(
        self,
        findings: list[Finding],
        newest: KbRelease,
        required: date,
        patch_tuesday: date,
        today: date,
    ) -> None:
        evidence = (
            f"Newest cumulative: {newest.kb} ({newest.release_type.value}, "
            f"released {newest.released.isoformat()})\n"
            f"Latest Patch Tuesday: {patch_tuesday.isoformat()}\n"
            f"Required release: {required.isoformat()} "
            f"(grace {self.config['grace_days']} days)\n"
            "Classified: " + ", ".join(
                f"{kb}={kind}" for kb, kind in self.context["classified"].items()
            )
        )

        if newest.released >= required:
            self.context["compliance"] = "COMPLIANT"
            return

        self.context["compliance"] = "NON-COMPLIANT"
        months_behind = max(1, (
            (patch_tuesday.year - newest.released.year) * 12
            + patch_tuesday.month - newest.released.month
        ))
        self.context["months_behind"] = months_behind
        severity = Severity.CRITICAL if months_behind >= 3 else Severity.HIGH
        findings.append(self.finding(
            title=f"Missing {months_behind} month(s) of security updates",
            description=(
                f"The newest cumulative update installed is {newest.kb} from "
                f"{newest.released.isoformat()}, older than the Patch Tuesday "
                f"release of {required.isoformat()} required on {today.isoformat()}."
            ),
            severity=severity,
            affected_item=newest.kb,
            evidence=evidence,
            recommendation="Install the latest cumulative update through Windows Update or the managing agent.",
            references=["https://msrc.microsoft.com/update-guide/releaseNote/"],
        ))

    def _fetch_online(self, build: int | None, server: bool) -> list[KbRelease]:
        family = builds.product_family(build, server=server)
        urls = {**builds.UPDATE_HISTORY_URLS, **(self.config.get("update_history_urls") or {})}
        url = urls.get(family) if family else None
        self.context["update_history_url"] = url
        if url is None or build is None:
            return []
        return web.fetch_update_history(url, timeout=float(self.config["request_timeout"]))

    def _check_latest_online(
        self,
        findings: list[Finding],
        build: int | None,
        installed: list[Hotfix],
        entries: list[KbRelease],
    ) -> None:
        latest = web.latest_release_for_build(entries, build) if build is not None else None
        if latest is None:
            self.context["latest_online_kb"] = None
            return

        self.context["latest_online_kb"] = latest.kb
        url = self.context["update_history_url"]
        installed_kbs = {h.kb for h in installed}
        running = f"{build}.{self.context.get('ubr')}"
        if latest.kb in installed_kbs or running in latest.builds:
            return

        findings.append(self.finding(
            title=f"Latest update {latest.kb} is not installed",
            description=(
                f"Microsoft lists {latest.kb} ({latest.release_type.value}, "
                f"{latest.released.isoformat()}) as the newest update for build "
                f"{build}, and it is not installed."
            ),
            severity=Severity.MEDIUM,
            affected_item=latest.kb,
            evidence=f"Source: {url}\nEntry: {latest.title}\nRunning build: {running}",
            recommendation=f"Install {latest.kb}.",
            references=[url, _CATALOG_URL.format(kb=latest.kb)],
        ))

    def summarize(self, findings: list[Finding]) -> str:
        ctx = self.context
        compliance = ctx.get("compliance", "UNKNOWN")
        if any(f.severity in (Severity.HIGH, Severity.CRITICAL) for f in findings):
            compliance = "NON-COMPLIANT"

        build = ctx.get("build")
        if build is None:
            parts = ["build unknown"]
        else:
            ubr = ctx.get("ubr")
            parts = [f"{ctx.get('version')} build {build}" + ("" if ubr is None else f".{ubr}")]
        if ctx.get("supported") is False:
            parts.append("out of support")
        if ctx.get("ahead_of_table"):
            parts.append("newer than known table")
        if ctx.get("newest_kb"):
            parts.append(
                f"latest installed {ctx['newest_kb']} ({ctx['newest_released']}, "
                f"{ctx['classified'].get(ctx['newest_kb'], 'Unknown')})"
            )
        else:
            parts.append("latest installed unknown")
        parts.append(f"Patch Tuesday {ctx.get('patch_tuesday')}")
        if ctx.get("months_behind"):
            parts.append(f"{ctx['months_behind']} month(s) behind")
        if self.config["web_lookup"]:
            parts.append(f"newest available {ctx.get('latest_online_kb') or 'unknown'}")

        return f"Patch: {compliance} - " + "; ".join(parts)
