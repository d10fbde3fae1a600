"""Static KB -> release date table shipped as package data."""

from __future__ import annotations

import importlib.resources
import json
import re
from datetime import date
from functools import lru_cache

from patchprobe.models import KbRelease, ReleaseType
from patchprobe.patch_calendar import classify_release

_DATA_PACKAGE = "patchprobe.data"
_DATA_FILE = "known_kbs.json"

_KB_RE = re.compile(r"^(?:KB)?\s*(\d{6,8})$", re.IGNORECASE)


def normalize_kb(value: str) -> str | None:
    """Return "KB1234567" for "kb1234567", "1234567" or " KB1234567 ", else None."""
    match = _KB_RE.match(value.strip())
    if not match:
        return None
    return f"KB{match.group(1)}"


def parse_table(raw: dict) -> dict[str, KbRelease]:
    table: dict[str, KbRelease] = {}
    for entry in raw.get("kbs", []):
        kb = normalize_kb(str(entry.get("kb", "")))
        if kb is None:
            continue
        released = date.fromisoformat(entry["released"])
        pinned = entry.get("type")
        release_type = ReleaseType(pinned) if pinned else classify_release(released)
        table[kb] = KbRelease(
            kb=kb,
            released=released,
            builds=list(entry.get("builds", [])),
            release_type=release_type,
            title=entry.get("title", ""),
        )
    return table


@lru_cache(maxsize=1)
def load_known_kbs() -> dict[str, KbRelease]:
    ref = importlib.resources.files(_DATA_PACKAGE).joinpath(_DATA_FILE)
    return parse_table(json.loads(ref.read_text(encoding="utf-8")))


def lookup(kb: str) -> KbRelease | None:
    normalized = normalize_kb(kb)
    if normalized is None:
        return None
    return load_known_kbs().get(normalized)


def newest_known_ubr(build: int | None) -> int | None:
    """Return the highest UBR any table release lists for a build, None if the build is absent."""
    if build is None:
        return None
    prefix = f"{build}."
    ubrs = [
        int(b[len(prefix):])
        for release in load_known_kbs().values()
        for b in release.builds
        if b.startswith(prefix) and b[len(prefix):].isdigit()
    ]
    return max(ubrs, default=None)
