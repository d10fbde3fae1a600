"""Windows service state via psutil's service control manager bindings."""

from __future__ import annotations

import logging

import psutil

from patchprobe.models import ServiceState
from patchprobe.platform import is_windows

log = logging.getLogger(__name__)


def platform_available() -> bool:
    return is_windows() and hasattr(psutil, "win_service_get")


def get_service(name: str) -> ServiceState:
    """Return the state of a single service.

    A service that does not exist (or cannot be queried) comes back with
    ``present=False`` rather than raising.
    """
    if not platform_available():
        return ServiceState(name=name)

    try:
        info = psutil.win_service_get(name).as_dict()
    except psutil.NoSuchProcess:
        return ServiceState(name=name)
    except psutil.Error as exc:
        log.debug("service query failed for %s: %s", name, exc)
        return ServiceState(name=name)

    return ServiceState(
        name=info.get("name") or name,
        display_name=info.get("display_name") or "",
        present=True,
        status=str(info.get("status") or ""),
        start_type=str(info.get("start_type") or ""),
    )


def get_services(names: list[str]) -> dict[str, ServiceState]:
    """Return service states keyed by the requested name."""
    return {name: get_service(name) for name in names}
