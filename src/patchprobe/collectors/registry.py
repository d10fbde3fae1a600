"""Windows Registry reader.

Thin wrapper over winreg with platform guards and WOW64 support.
Every function returns an empty result on non-Windows platforms or when
the key or value does not exist, so probes can treat "missing" and
"not configured" the same way.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from patchprobe.platform import is_windows

# Matches winreg.HKEY_LOCAL_MACHINE so it passes straight through
HKEY_LOCAL_MACHINE = 0x80000002


@dataclass
class RegistryValue:
    """A single registry value with name, data, and type."""
    name: str
    data: Any
    type: int


def _access_mask(winreg, wow64_32: bool) -> int:
    access = winreg.KEY_READ
    if wow64_32:
        access |= winreg.KEY_WOW64_32KEY
    return access


def read_key(hive: int, path: str, wow64_32: bool = False) -> list[RegistryValue]:
    """Read all values from a registry key.

    Args:
        hive: Registry hive constant (e.g., HKEY_LOCAL_MACHINE).
        path: Subkey path.
        wow64_32: If True, access the 32-bit registry view on 64-bit Windows.

    Returns:
        List of RegistryValue objects, or empty list on error/non-Windows.
    """
    if not is_windows():
        return []

    import winreg

    values = []
    try:
        with winreg.OpenKey(hive, path, 0, _access_mask(winreg, wow64_32)) as key:
            i = 0
            while True:
                try:
                    name, data, reg_type = winreg.EnumValue(key, i)
                except OSError:
                    break
                values.append(RegistryValue(name=name, data=data, type=reg_type))
                i += 1
    except OSError:
        return []
    return values


def read_value(hive: int, path: str, name: str, wow64_32: bool = False) -> RegistryValue | None:
    """Read a single named value from a registry key.

    Returns:
        RegistryValue if found, None otherwise.
    """
    if not is_windows():
        return None

    import winreg

    try:
        with winreg.OpenKey(hive, path, 0, _access_mask(winreg, wow64_32)) as key:
            data, reg_type = winreg.QueryValueEx(key, name)
            return RegistryValue(name=name, data=data, type=reg_type)
    except OSError:
        return None


def read_int(hive: int, path: str, name: str) -> int | None:
    """Read a value and coerce it to int (DWORD policies are sometimes stored as strings)."""
    val = read_value(hive, path, name)
    if val is None:
        return None
    try:
        return int(val.data)
    except (ValueError, TypeError):
        return None


def key_exists(hive: int, path: str, wow64_32: bool = False) -> bool:
    """Return True if the registry key can be opened for reading."""
    if not is_windows():
        return False

    import winreg

    try:
        with winreg.OpenKey(hive, path, 0, _access_mask(winreg, wow64_32)):
            return True
    except OSError:
        return False


def enumerate_subkeys(hive: int, path: str, wow64_32: bool = False) -> list[str]:
    """Enumerate all subkey names under a registry key.

    Returns:
        List of subkey names, or empty list on error/non-Windows.
    """
    if not is_windows():
        return []

    import winreg

    subkeys = []
    try:
        with winreg.OpenKey(hive, path, 0, _access_mask(winreg, wow64_32)) as key:
            i = 0
            while True:
                try:
                    subkeys.append(winreg.EnumKey(key, i))
                except OSError:
                    break
                i += 1
    except OSError:
        return []
    return subkeys
