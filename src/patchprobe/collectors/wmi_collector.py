"""CIM query wrapper using PowerShell Get-CimInstance.

Runs CIM queries through a PowerShell subprocess rather than the
Python wmi module, so the package imports cleanly on non-Windows
development hosts.
"""

from __future__ import annotations

from patchprobe.collectors.powershell import as_list, run_ps
from patchprobe.platform import is_windows


def query(
    cim_class: str,
    properties: list[str] | None = None,
    namespace: str = "root\\cimv2",
    where: str | None = None,
    timeout: int = 60,
) -> list[dict]:
    """Execute a CIM query and return results as a list of dicts.

    Args:
        cim_class: CIM class name (e.g., 'Win32_QuickFixEngineering').
        properties: Property names to select. None = all properties.
        namespace: CIM namespace (default: root\\cimv2).
        where: Optional WQL filter expression (e.g., "Name='wuauserv'").
        timeout: Timeout in seconds for the PowerShell command.

    Returns:
        List of dicts, one per CIM instance. Empty on non-Windows or error.
    """
    if not is_windows():
        return []

    cmd_parts = [f"Get-CimInstance -ClassName {cim_class}"]

    if namespace != "root\\cimv2":
        cmd_parts.append(f"-Namespace '{namespace}'")

    if where:
        cmd_parts.append(f"-Filter \"{where}\"")

    if properties:
        cmd_parts.append(f"| Select-Object {', '.join(properties)}")

    result = run_ps(" ".join(cmd_parts), timeout=timeout, as_json=True)
    if not result.success or result.json_output is None:
        return []
    return as_list(result.json_output)
