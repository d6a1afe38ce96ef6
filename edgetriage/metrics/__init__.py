from __future__ import annotations

from edgetriage.metrics.engine import run_triage
from edgetriage.metrics.summary import render_summary

__all__ = [
    "run_triage",
    "render_summary",
    "PACKAGE_VERSION",
]

PACKAGE_VERSION: str = "0.3.0"
