from __future__ import annotations
import html
from typing import Optional


def warning_chip(text: str) -> str:
    # warnings echo user-typed filter values
    return f"<span class='chip warn'>{html.escape(str(text))}</span>"

def fmt_value(x: Optional[float], suffix: str = "") -> str:
    return "n/a" if x is None else f"{x:,.1f}{suffix}"
