from __future__ import annotations
import logging
from typing import Any, Iterable, Optional, Union

from edgetriage.core.config import EngineLimits
from edgetriage.data.models import MetricsResult, Scope, TimeRange, Timeseries
from edgetriage.ingest.loader import parse_csv
from edgetriage.metrics.breakdowns import aggregate
from edgetriage.metrics.filters import filter_records, parse_filters
from edgetriage.metrics.quality import build_debug, build_warnings, data_quality
from edgetriage.metrics.timeseries import build_timeseries
from edgetriage.metrics.window import select_window, validate_window

log = logging.getLogger("metrics.engine")


def run_triage(
    csv_text: Optional[str],
    service: str = "all",
    region: str = "all",
    pop: str = "all",
    window_minutes: Any = 60,
    filters: Union[str, Iterable[Any], None] = None,
    debug: bool = False,
    limits: Optional[EngineLimits] = None,
) -> MetricsResult:
    """Compute windowed, filtered edge-log metrics for one CSV payload.

    Raises InvalidWindow, ParseError or NoValidTimestamps before any metric
    is computed. Empty windows and filters that match nothing are not errors:
    they yield a zero-valued result carrying warnings.
    """
    limits = limits or EngineLimits()
    service = service or "all"
    region = region or "all"
    pop = pop or "all"
    window_m = validate_window(window_minutes)
    specs = parse_filters(filters)

    records = parse_csv(csv_text)
    window = select_window(records, window_m)
    filtered = filter_records(window.in_window, service, region, pop, specs)

    dq = data_quality(records, window.in_window)
    warnings = build_warnings(
        window.in_window, filtered, {"service": service, "region": region, "pop": pop}, dq.window
    )

    scope = Scope(
        service=service,
        region=region,
        pop=pop,
        window_minutes=window_m,
        filters=[s.describe() for s in specs],
    )
    result = MetricsResult(
        scope=scope,
        time_range=TimeRange(start=window.start_iso, end=window.end_iso),
        warnings=warnings,
        data_quality=dq,
        timeseries=Timeseries.empty(),
    )

    if filtered:
        agg = aggregate(filtered, limits)
        result = result.model_copy(update={
            "total_requests": agg.total,
            "p95_latency_ms": agg.p95_latency_ms,
            "p99_latency_ms": agg.p99_latency_ms,
            "cache_hit_pct": agg.cache_hit_pct,
            "cache_miss_pct": agg.cache_miss_pct,
            "response_code_histogram": agg.histogram,
            "error_count": agg.error_count,
            "error_rate_pct": agg.error_rate_pct,
            "top_result_class": agg.top_result_class,
            "top_error_result_code": agg.top_error_result_code,
            "breakdowns": agg.breakdowns,
            "host_breakdown": agg.hosts,
            "host_by_result_code_flattened": agg.host_codes,
            "timeseries": build_timeseries(filtered, limits),
        })

    if debug:
        result = result.model_copy(update={
            "debug": build_debug(records, window, filtered, dq, warnings, limits),
        })

    log.info(
        "triage_run",
        extra={
            "stage": "metrics",
            "rows": len(records),
            "in_window": len(window.in_window),
            "filtered": len(filtered),
            "warnings": len(warnings),
        },
    )
    return result
