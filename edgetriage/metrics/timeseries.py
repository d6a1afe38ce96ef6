from __future__ import annotations
import logging
from collections import Counter
from typing import List, Sequence

import pandas as pd

from edgetriage.core.config import EngineLimits
from edgetriage.data.models import Record, Timeseries, TimeseriesPoint
from edgetriage.metrics.breakdowns import is_error, is_plausible_status
from edgetriage.metrics.stats import percentile
from edgetriage.metrics.window import iso_utc

log = logging.getLogger("metrics.timeseries")


def span_minutes(records: Sequence[Record]) -> float:
    ts = [r.timestamp_ms for r in records if r.timestamp_ms is not None]
    if not ts:
        return 0.0
    return max(0.0, (max(ts) - min(ts)) / 60_000)

def choose_bucket_seconds(span: float, limits: EngineLimits) -> int:
    if span <= limits.fine_span_minutes:
        return limits.fine_bucket_seconds
    return limits.coarse_bucket_seconds

def _point(bucket_ms: int, members: List[Record]) -> TimeseriesPoint:
    total = len(members)
    errors = sum(1 for r in members if is_error(r))
    status = Counter(str(r.response_code) for r in members if is_plausible_status(r.response_code))
    latencies = [r.latency_ms for r in members]
    return TimeseriesPoint(
        ts=iso_utc(bucket_ms),
        total_requests=total,
        error_count=errors,
        error_rate_pct=(errors / total * 100.0) if total else 0.0,
        p95_latency_ms=percentile(latencies, 95),
        p99_latency_ms=percentile(latencies, 99),
        status_counts=dict(status),
        result_code_counts=dict(Counter(r.result_code for r in members)),
        host_counts=dict(Counter(r.host for r in members)),
    )

def build_timeseries(records: Sequence[Record], limits: EngineLimits) -> Timeseries:
    timed = [r for r in records if r.timestamp_ms is not None]
    if not timed:
        return Timeseries.empty()

    bucket_seconds = choose_bucket_seconds(span_minutes(timed), limits)
    bucket_ms = bucket_seconds * 1000

    frame = pd.DataFrame({"ts": [r.timestamp_ms for r in timed]}, dtype="int64")
    frame["bucket"] = (frame["ts"] // bucket_ms) * bucket_ms

    points: List[TimeseriesPoint] = []
    for bucket, group in frame.groupby("bucket", sort=True):
        points.append(_point(int(bucket), [timed[i] for i in group.index]))

    log.debug(
        "build_timeseries",
        extra={"stage": "timeseries", "bucket_seconds": bucket_seconds, "points": len(points)},
    )
    return Timeseries(
        bucket_seconds=bucket_seconds,
        start_ts=iso_utc(int(frame["bucket"].min())),
        end_ts=iso_utc(int(frame["bucket"].max())),
        points=points,
    )
