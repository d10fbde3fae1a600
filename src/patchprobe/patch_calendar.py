"""Patch Tuesday date arithmetic and release classification.

Microsoft ships its monthly security ("B") release on the second Tuesday
of the month. Optional non-security preview ("D") releases follow in the
fourth week, and anything else is an out-of-band release.
"""

from __future__ import annotations

from datetime import date, timedelta

from patchprobe.models import ReleaseType

_TUESDAY = 1  # date.weekday()

# Days after Patch Tuesday that still count as the security release.
# Some catalogs stamp the release with the next day in UTC.
SECURITY_WINDOW = (0, 1)

# Days after Patch Tuesday covering fourth-week preview releases
# (fourth Tuesday is +14, late-month Thursday drops reach +16).
PREVIEW_WINDOW = (12, 16)


def patch_tuesday(year: int, month: int) -> date:
    """Return the second Tuesday of the given month."""
    first = date(year, month, 1)
    offset = (_TUESDAY - first.weekday()) % 7
    return first + timedelta(days=offset + 7)


def is_patch_tuesday(day: date) -> bool:
    return day == patch_tuesday(day.year, day.month)


def _previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def _next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def latest_patch_tuesday(day: date) -> date:
    """Return the most recent Patch Tuesday on or before ``day``."""
    candidate = patch_tuesday(day.year, day.month)
    if candidate <= day:
        return candidate
    return patch_tuesday(*_previous_month(day.year, day.month))


def next_patch_tuesday(day: date) -> date:
    """Return the first Patch Tuesday strictly after ``day``."""
    candidate = patch_tuesday(day.year, day.month)
    if candidate > day:
        return candidate
    return patch_tuesday(*_next_month(day.year, day.month))


def classify_release(day: date) -> ReleaseType:
    """Classify a release date by its offset from the governing Patch Tuesday."""
    offset = (day - latest_patch_tuesday(day)).days
    if SECURITY_WINDOW[0] <= offset <= SECURITY_WINDOW[1]:
        return ReleaseType.SECURITY
    if PREVIEW_WINDOW[0] <= offset <= PREVIEW_WINDOW[1]:
        return ReleaseType.PREVIEW
    return ReleaseType.OUT_OF_BAND


def compliance_deadline(day: date, grace_days: int) -> date:
    """Return the date by which the latest Patch Tuesday release must be installed."""
    return latest_patch_tuesday(day) + timedelta(days=grace_days)


def required_release_date(day: date, grace_days: int) -> date:
    """Return the Patch Tuesday whose release a compliant host must have on ``day``.

    Inside the grace period after a Patch Tuesday the previous month's
    release is still sufficient.
    """
    current = latest_patch_tuesday(day)
    if day < current + timedelta(days=grace_days):
        return latest_patch_tuesday(current - timedelta(days=1))
    return current
