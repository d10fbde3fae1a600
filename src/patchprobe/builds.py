"""Static Windows build tables: version names, servicing dates, update-history pages."""

from __future__ import annotations

from datetime import date

CLIENT_BUILDS: dict[int, str] = {
    10240: "Windows 10 1507",
    10586: "Windows 10 1511",
    14393: "Windows 10 1607",
    15063: "Windows 10 1703",
    16299: "Windows 10 1709",
    17134: "Windows 10 1803",
    17763: "Windows 10 1809",
    18362: "Windows 10 1903",
    18363: "Windows 10 1909",
    19041: "Windows 10 2004",
    19042: "Windows 10 20H2",
    19043: "Windows 10 21H1",
    19044: "Windows 10 21H2",
    19045: "Windows 10 22H2",
    22000: "Windows 11 21H2",
    22621: "Windows 11 22H2",
    22631: "Windows 11 23H2",
    26100: "Windows 11 24H2",
}

# Server editions share build numbers with client releases, except 20348.
SERVER_BUILDS: dict[int, str] = {
    14393: "Windows Server 2016",
    17763: "Windows Server 2019",
    20348: "Windows Server 2022",
    26100: "Windows Server 2025",
}

# End of extended support for Server LTSC releases.
SERVER_END_OF_SERVICING: dict[int, date] = {
    14393: date(2027, 1, 12),
    17763: date(2029, 1, 9),
    20348: date(2031, 10, 14),
    26100: date(2034, 11, 14),
}

# End of servicing for Home/Pro editions.
END_OF_SERVICING: dict[int, date] = {
    10240: date(2017, 5, 9),
    10586: date(2017, 10, 10),
    14393: date(2018, 4, 10),
    15063: date(2018, 10, 9),
    16299: date(2019, 4, 9),
    17134: date(2019, 11, 12),
    17763: date(2020, 11, 10),
    18362: date(2020, 12, 8),
    18363: date(2021, 5, 11),
    19041: date(2021, 12, 14),
    19042: date(2022, 5, 10),
    19043: date(2022, 12, 13),
    19044: date(2023, 6, 13),
    19045: date(2025, 10, 14),
    22000: date(2023, 10, 10),
    22621: date(2024, 10, 8),
    22631: date(2025, 11, 11),
    26100: date(2026, 10, 13),
}

WINDOWS_10 = "windows-10"
WINDOWS_11 = "windows-11"
WINDOWS_11_24H2 = "windows-11-24h2"
SERVER_2022 = "windows-server-2022"

UPDATE_HISTORY_URLS: dict[str, str] = {
    WINDOWS_10: "https://support.microsoft.com/en-us/topic/windows-10-update-history-8127c2c6-6edf-4fdf-8b9f-0f7be1ef3562",
    WINDOWS_11: "https://support.microsoft.com/en-us/topic/windows-11-version-23h2-update-history-59875222-b990-4bd9-932f-91a5954de434",
    WINDOWS_11_24H2: "https://support.microsoft.com/en-us/topic/windows-11-version-24h2-update-history-0929c747-1815-4543-8461-0160d16f15e5",
    SERVER_2022: "https://support.microsoft.com/en-us/topic/windows-server-2022-update-history-e1caa597-00c5-4ab9-9f3e-8212fe80b2ee",
}

_SERVER_FAMILIES: dict[int, str] = {
    20348: SERVER_2022,
}


def _as_server(build: int, server: bool) -> bool:
    return server or (build in SERVER_BUILDS and build not in CLIENT_BUILDS)


def version_name(build: int | None, server: bool = False) -> str:
    """Return e.g. "Windows 11 23H2" for build 22631, or "Unknown build N"."""
    if build is None:
        return "Unknown build"
    if _as_server(build, server) and build in SERVER_BUILDS:
        return SERVER_BUILDS[build]
    return CLIENT_BUILDS.get(build, f"Unknown build {build}")


def product_family(build: int | None, server: bool = False) -> str | None:
    """Return the update-history family key for a build, None if unknown."""
    if build is None:
        return None
    if _as_server(build, server):
        return _SERVER_FAMILIES.get(build)
    if build >= 26100:
        return WINDOWS_11_24H2
    if build >= 22000:
        return WINDOWS_11
    if build >= 10240:
        return WINDOWS_10
    return None


def end_of_servicing(build: int | None, server: bool = False) -> date | None:
    """Return the last serviced day for a build, None if the build is unknown."""
    if build is None:
        return None
    if _as_server(build, server):
        return SERVER_END_OF_SERVICING.get(build)
    return END_OF_SERVICING.get(build)


def is_supported(build: int | None, today: date, server: bool = False) -> bool | None:
    """Return False when a build is past end of servicing, None if unknown."""
    last_day = end_of_servicing(build, server)
    if last_day is None:
        return None
    return today <= last_day
