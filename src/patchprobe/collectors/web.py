"""Best-effort scraping of Microsoft support "update history" pages.

The support site lists every cumulative update for a Windows release as
navigation links of the form::

    November 12, 2024—KB5046633 (OS Builds 22621.4460 and 22631.4460)
    October 22, 2024—KB5044380 (OS Builds 22621.4391 and 22631.4391) Preview

Only the KB number, date, builds and the Preview/Out-of-band marker are
extracted. Any network or parse failure returns an empty list; callers
fall back to "latest KB unknown".
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime

import requests
from bs4 import BeautifulSoup

from patchprobe.models import KbRelease, ReleaseType
from patchprobe.patch_calendar import classify_release

log = logging.getLogger(__name__)

USER_AGENT = "patchprobe/0.3 (+compliance probe)"

_ENTRY_RE = re.compile(
    r"(?P<date>[A-Z][a-z]+ \d{1,2}, \d{4})\s*[—–-]+\s*"
    r"KB(?P<kb>\d{6,8})\s*"
    r"\(OS Builds? (?P<builds>[^)]+)\)"
    r"(?P<suffix>[^\n]*)",
)
_BUILD_RE = re.compile(r"\d{5}\.\d+")


def parse_release_date(text: str) -> date | None:
    try:
        return datetime.strptime(text.strip(), "%B %d, %Y").date()
    except ValueError:
        return None


def parse_entry(text: str) -> KbRelease | None:
    """Parse one update-history line into a KbRelease, or None if it is not one."""
    match = _ENTRY_RE.search(" ".join(text.split()))
    if not match:
        return None
    released = parse_release_date(match.group("date"))
    if released is None:
        return None

    suffix = match.group("suffix").lower()
    if "preview" in suffix:
        release_type = ReleaseType.PREVIEW
    elif "out-of-band" in suffix or "out of band" in suffix:
        release_type = ReleaseType.OUT_OF_BAND
    else:
        release_type = classify_release(released)

    return KbRelease(
        kb=f"KB{match.group('kb')}",
        released=released,
        builds=_BUILD_RE.findall(match.group("builds")),
        release_type=release_type,
        title=match.group(0).strip(),
    )


def parse_update_history(html: str) -> list[KbRelease]:
    """Extract KB releases from an update-history page, newest first."""
    soup = BeautifulSoup(html, "html.parser")

    seen: dict[str, KbRelease] = {}
    candidates = [a.get_text(" ", strip=True) for a in soup.find_all("a")]
    candidates += [h.get_text(" ", strip=True) for h in soup.find_all(["h2", "h3", "li"])]
    for text in candidates:
        entry = parse_entry(text)
        if entry is not None and entry.kb not in seen:
            seen[entry.kb] = entry

    return sorted(seen.values(), key=lambda e: e.released, reverse=True)


def _get_text(http: requests.Session, url: str, timeout: float) -> str:
    resp = http.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
    resp.raise_for_status()
    return resp.text


def fetch_update_history(
    url: str,
    session: requests.Session | None = None,
    timeout: float = 15.0,
) -> list[KbRelease]:
    """GET an update-history page and parse it. Returns [] on any failure."""
    try:
        if session is not None:
            text = _get_text(session, url, timeout)
        else:
            with requests.Session() as http:
                text = _get_text(http, url, timeout)
    except requests.RequestException as exc:
        log.warning("update history fetch failed for %s: %s", url, exc)
        return []

    entries = parse_update_history(text)
    if not entries:
        log.warning("no KB entries recognised on %s", url)
    else:
        log.debug("parsed %d KB entries from %s", len(entries), url)
    return entries


def latest_release_for_build(
    entries: list[KbRelease],
    build: int,
    include_previews: bool = False,
) -> KbRelease | None:
    """Return the newest release that ships the given OS build number."""
    prefix = f"{build}."
    matching = [
        e for e in entries
        if any(b.startswith(prefix) for b in e.builds)
        and (include_previews or e.release_type != ReleaseType.PREVIEW)
    ]
    if not matching:
        return None
    return max(matching, key=lambda e: e.released)
