"""Platform detection, privilege checks, and OS version lookup."""

from __future__ import annotations

import os
import shutil
import socket
import sys

_NT_KEY = r"SOFTWARE\Microsoft\Windows NT\CurrentVersion"


def is_windows() -> bool:
    """Return True if running on Windows."""
    return sys.platform == "win32"


def is_admin() -> bool:
    """Return True if running with administrator privileges on Windows.

    Returns False on non-Windows platforms.
    """
    if not is_windows():
        return False
    try:
        import ctypes
        return bool(ctypes.windll.shell32.IsUserAnAdmin())
    except (AttributeError, OSError):
        return False


def has_tool(name: str) -> bool:
    """Return True if the named tool is available on PATH."""
    return shutil.which(name) is not None


def _read_nt_value(name: str) -> str | None:
    from patchprobe.collectors import registry

    val = registry.read_value(registry.HKEY_LOCAL_MACHINE, _NT_KEY, name)
    if val is None:
        return None
    return str(val.data)


def _fix_product_name(product_name: str, build_number: int | None) -> str:
    """Fix Windows ProductName registry value for Windows 11.

    The registry ProductName reads "Windows 10 Pro" even on Windows 11
    (build >= 22000).
    """
    if build_number is not None and build_number >= 22000 and "Windows 10" in product_name:
        return product_name.replace("Windows 10", "Windows 11")
    return product_name


def get_build() -> tuple[int | None, int | None]:
    """Return (CurrentBuildNumber, UBR) as integers, None where unavailable."""
    if not is_windows():
        return None, None

    build: int | None = None
    ubr: int | None = None
    raw_build = _read_nt_value("CurrentBuildNumber")
    raw_ubr = _read_nt_value("UBR")
    try:
        build = int(raw_build) if raw_build else None
    except ValueError:
        build = None
    try:
        ubr = int(raw_ubr) if raw_ubr else None
    except ValueError:
        ubr = None
    return build, ubr


def is_server() -> bool:
    """Return True on a Windows Server installation.

    InstallationType reads "Server" or "Server Core" on Server editions and
    "Client" on desktop editions. Returns False on non-Windows platforms.
    """
    if not is_windows():
        return False
    installation_type = _read_nt_value("InstallationType")
    return bool(installation_type) and installation_type.lower().startswith("server")


def get_os_version() -> str:
    """Return a human-friendly OS version string.

    On Windows this reads like "Windows 11 Pro 23H2 (Build 22631.4460)".
    """
    if not is_windows():
        return f"{sys.platform} ({os.uname().release})"

    product_name = _read_nt_value("ProductName")
    display_version = _read_nt_value("DisplayVersion")
    build, ubr = get_build()

    if product_name:
        parts = [_fix_product_name(product_name, build)]
        if display_version:
            parts.append(display_version)
        if build is not None:
            build_str = f"{build}.{ubr}" if ubr is not None else str(build)
            parts.append(f"(Build {build_str})")
        return " ".join(parts)

    try:
        ver = sys.getwindowsversion()
        return f"Windows {ver.major}.{ver.minor}.{ver.build}"
    except AttributeError:
        return f"Windows (Python {sys.version})"


def get_hostname() -> str:
    """Return the system hostname."""
    return socket.gethostname()


def get_powershell_path() -> str | None:
    """Return path to PowerShell executable, or None if not found.

    Prefers pwsh (PowerShell 7+) over powershell.exe (Windows PowerShell 5.1).
    """
    for name in ("pwsh", "powershell.exe", "powershell"):
        path = shutil.which(name)
        if path:
            return path
    return None
