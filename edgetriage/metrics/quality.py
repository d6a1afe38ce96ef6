from __future__ import annotations
from typing import Dict, List, Optional, Sequence

from edgetriage.core.config import EngineLimits
from edgetriage.data.models import (
    DataQuality,
    DebugInfo,
    QualityCounters,
    Record,
    UNKNOWN,
    UNKNOWN_CODE,
    ValueCount,
)
from edgetriage.metrics.breakdowns import value_counts
from edgetriage.metrics.filters import DIMENSIONS, is_wildcard, match_dim
from edgetriage.metrics.window import WindowSelection


def quality_counters(records: Sequence[Record]) -> QualityCounters:
    return QualityCounters(
        invalid_ts=sum(1 for r in records if not r.has_valid_ts),
        missing_response_code=sum(1 for r in records if r.response_code is None),
        unknown_service=sum(1 for r in records if r.service == UNKNOWN),
        unknown_region=sum(1 for r in records if r.region == UNKNOWN),
        unknown_pop=sum(1 for r in records if r.pop == UNKNOWN),
        unknown_host=sum(1 for r in records if r.host == UNKNOWN),
        unknown_result_code=sum(1 for r in records if r.result_code == UNKNOWN_CODE),
    )

def data_quality(records: Sequence[Record], in_window: Sequence[Record]) -> DataQuality:
    return DataQuality(all=quality_counters(records), window=quality_counters(in_window))


FILTERS_REMOVED_ALL = "Filters removed all rows. Check available values in DEBUG."

_DIM_WARNINGS = {
    "service": "Service filter '{v}' did not reduce dataset (possible schema mismatch).",
    "region": "Region filter '{v}' did not reduce dataset.",
    "pop": "POP filter '{v}' did not reduce dataset.",
}

def build_warnings(
    in_window: Sequence[Record],
    filtered: Sequence[Record],
    dims: Dict[str, str],
    window_quality: QualityCounters,
) -> List[str]:
    warnings: List[str] = []
    if in_window:
        for d in DIMENSIONS:
            expected = dims.get(d)
            if is_wildcard(expected):
                continue
            kept = sum(1 for r in in_window if match_dim(getattr(r, d), expected))
            if kept == len(in_window):
                warnings.append(_DIM_WARNINGS[d].format(v=expected))
        if not filtered:
            warnings.append(FILTERS_REMOVED_ALL)
    if window_quality.missing_response_code > 0:
        warnings.append(
            f"Some rows missing edge_status ({window_quality.missing_response_code}). "
            "Response code totals may not sum perfectly."
        )
    if window_quality.invalid_ts > 0:
        warnings.append(f"Some rows have invalid ts in window ({window_quality.invalid_ts}).")
    return warnings


def available_values(records: Sequence[Record], limits: EngineLimits) -> Dict[str, List[ValueCount]]:
    n = limits.available_limit
    return {
        "service": value_counts((r.service for r in records), n),
        "region": value_counts((r.region for r in records), n),
        "pop": value_counts((r.pop for r in records), n),
        "host": value_counts((r.host for r in records), n),
        "resultClass": value_counts((r.result_class for r in records), n),
        "resultCode": value_counts((r.result_code for r in records), n),
        "responseCode": value_counts((r.response_code for r in records), limits.available_status_limit),
    }

def build_debug(
    records: Sequence[Record],
    window: WindowSelection,
    filtered: Sequence[Record],
    dq: DataQuality,
    warnings: List[str],
    limits: EngineLimits,
) -> DebugInfo:
    sample: Optional[Record] = filtered[0] if filtered else (window.in_window[0] if window.in_window else None)
    return DebugInfo(
        rows_total=len(records),
        rows_in_window=len(window.in_window),
        rows_filtered=len(filtered),
        time={"anchor": window.anchor_iso, "start": window.start_iso, "end": window.end_iso},
        available=available_values(window.in_window, limits),
        data_quality=dq,
        warnings=list(warnings),
        sample=sample.compact() if sample else None,
    )
