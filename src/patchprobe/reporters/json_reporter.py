"""JSON report output."""

from __future__ import annotations

import os
from pathlib import Path

from patchprobe.models import ProbeReport


def generate(report: ProbeReport, output_dir: str) -> str:
    """Serialize the report to a JSON file.

    Returns:
        Path to the generated JSON file.
    """
    os.makedirs(output_dir, exist_ok=True)

    timestamp = report.scan_start.strftime("%Y%m%d_%H%M%S")
    filepath = Path(output_dir) / f"{report.hostname}_{timestamp}.json"
    filepath.write_text(report.model_dump_json(indent=2), encoding="utf-8")

    return str(filepath)
