"""Installed hotfix enumeration via Win32_QuickFixEngineering."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timezone
from typing import Any

from patchprobe.collectors import wmi_collector
from patchprobe.collectors.powershell import as_list, run_ps
from patchprobe.known_kbs import normalize_kb
from patchprobe.models import Hotfix

log = logging.getLogger(__name__)

# Windows PowerShell 5.1 serializes DateTime as "/Date(1704844800000)/"
_MS_DATE_RE = re.compile(r"/Date\((-?\d+)\)/")

_HOTFIX_PROPERTIES = ["HotFixID", "Description", "InstalledOn", "InstalledBy"]


def parse_cim_date(raw: Any) -> date | None:
    """Parse the many shapes an InstalledOn value takes after ConvertTo-Json."""
    if raw is None:
        return None
    if isinstance(raw, dict):
        # Get-HotFix wraps InstalledOn as {"value": "/Date(..)/", "DateTime": "..."}
        return parse_cim_date(raw.get("value") or raw.get("DateTime"))

    text = str(raw).strip()
    if not text:
        return None

    match = _MS_DATE_RE.search(text)
    if match:
        epoch_ms = int(match.group(1))
        return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).date()

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    # Raw QFE InstalledOn strings are locale-formatted, usually M/D/YYYY
    for fmt in ("%m/%d/%Y", "%d/%m/%Y", "%Y%m%d"):
        try:
            return datetime.strptime(text.split(" ")[0], fmt).date()
        except ValueError:
            continue
    return None


def parse_hotfixes(rows: list[dict]) -> list[Hotfix]:
    """Convert raw CIM rows into Hotfix models, dropping rows without a KB id."""
    hotfixes: list[Hotfix] = []
    for row in rows:
        kb = normalize_kb(str(row.get("HotFixID") or ""))
        if kb is None:
            continue
        hotfixes.append(Hotfix(
            kb=kb,
            description=str(row.get("Description") or ""),
            installed_on=parse_cim_date(row.get("InstalledOn")),
            installed_by=str(row.get("InstalledBy") or ""),
        ))
    return hotfixes


def installed_hotfixes(timeout: int = 60) -> list[Hotfix]:
    """Return installed hotfixes, falling back to Get-HotFix when CIM returns nothing."""
    rows = wmi_collector.query(
        "Win32_QuickFixEngineering",
        properties=_HOTFIX_PROPERTIES,
        timeout=timeout,
    )
    if not rows:
        log.debug("Win32_QuickFixEngineering returned no rows, trying Get-HotFix")
        result = run_ps(
            f"Get-HotFix | Select-Object {', '.join(_HOTFIX_PROPERTIES)}",
            timeout=timeout,
            as_json=True,
        )
        if result.success:
            rows = as_list(result.json_output)
    return parse_hotfixes(rows)


def most_recent(hotfixes: list[Hotfix]) -> Hotfix | None:
    dated = [h for h in hotfixes if h.installed_on is not None]
    if not dated:
        return None
    return max(dated, key=lambda h: h.installed_on)
