"""patchprobe - Windows Update health, management conflict and patch compliance probes."""

__version__ = "0.3.0"
