from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, List, Sequence

from edgetriage.core.errors import InvalidWindow, NoValidTimestamps
from edgetriage.data.models import Record

log = logging.getLogger("metrics.window")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def iso_utc(ms: float) -> str:
    dt = _EPOCH + timedelta(milliseconds=math.floor(ms))
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"

def validate_window(window_minutes: Any) -> float:
    if isinstance(window_minutes, bool):
        raise InvalidWindow("windowMinutes must be a positive number.")
    try:
        w = float(window_minutes)
    except (TypeError, ValueError):
        raise InvalidWindow("windowMinutes must be a positive number.")
    if not math.isfinite(w) or w <= 0:
        raise InvalidWindow("windowMinutes must be a positive number.")
    return w


@dataclass(frozen=True)
class WindowSelection:
    anchor_ms: int
    start_ms: float
    end_ms: int
    in_window: List[Record]
    out_of_window: List[Record]

    @property
    def start_iso(self) -> str:
        return iso_utc(self.start_ms)

    @property
    def end_iso(self) -> str:
        return iso_utc(self.end_ms)

    @property
    def anchor_iso(self) -> str:
        return iso_utc(self.anchor_ms)


def anchor_ms(records: Sequence[Record]) -> int:
    valid = [r.timestamp_ms for r in records if r.timestamp_ms is not None]
    if not valid:
        raise NoValidTimestamps("No valid timestamps found. Check ts format (expected ISO-like).")
    return max(valid)

def select_window(records: Sequence[Record], window_minutes: float) -> WindowSelection:
    w = validate_window(window_minutes)
    anchor = anchor_ms(records)
    start = anchor - w * 60_000
    inside: List[Record] = []
    outside: List[Record] = []
    for r in records:
        if r.timestamp_ms is not None and start <= r.timestamp_ms <= anchor:
            inside.append(r)
        else:
            outside.append(r)
    log.debug(
        "select_window",
        extra={"stage": "window", "anchor": anchor, "in_window": len(inside), "out_of_window": len(outside)},
    )
    return WindowSelection(anchor_ms=anchor, start_ms=start, end_ms=anchor, in_window=inside, out_of_window=outside)
