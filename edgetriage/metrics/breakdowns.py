from __future__ import annotations
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from edgetriage.core.config import EngineLimits
from edgetriage.data.models import (
    CodeCount,
    HostBreakdown,
    HostResultCode,
    Record,
    ValueCount,
)
from edgetriage.metrics.stats import pct, percentile, top_counts

BREAKDOWN_DIMENSIONS = ("service", "region", "pop", "host", "result_class", "result_code")


def is_error(record: Record) -> bool:
    return record.response_code is not None and record.response_code >= 500

def is_plausible_status(code: Optional[int]) -> bool:
    return code is not None and 100 <= code <= 599

def value_counts(values, limit: Optional[int] = None) -> List[ValueCount]:
    return [ValueCount(value=str(v), count=c) for v, c in top_counts(values, limit)]

def response_code_histogram(records: Sequence[Record]) -> List[CodeCount]:
    counts = Counter(r.response_code for r in records if r.response_code is not None)
    return [CodeCount(code=code, count=n) for code, n in sorted(counts.items())]

def category_breakdowns(records: Sequence[Record], limit: int) -> Dict[str, List[ValueCount]]:
    out: Dict[str, List[ValueCount]] = {}
    for dim in BREAKDOWN_DIMENSIONS:
        key = "resultClass" if dim == "result_class" else "resultCode" if dim == "result_code" else dim
        out[key] = value_counts((getattr(r, dim) for r in records), limit)
    return out


@dataclass
class _HostAcc:
    total: int = 0
    latencies: List[float] = field(default_factory=list)
    status: Counter = field(default_factory=Counter)
    codes: Counter = field(default_factory=Counter)


def host_breakdown(records: Sequence[Record], limits: EngineLimits) -> List[HostBreakdown]:
    acc: Dict[str, _HostAcc] = {}
    for r in records:
        a = acc.setdefault(r.host, _HostAcc())
        a.total += 1
        if r.latency_ms is not None:
            a.latencies.append(r.latency_ms)
        a.codes[r.result_code] += 1
        if is_plausible_status(r.response_code):
            a.status[str(r.response_code)] += 1

    ranked = sorted(acc.items(), key=lambda kv: kv[1].total, reverse=True)[: limits.host_limit]
    return [
        HostBreakdown(
            host=host,
            total_requests=a.total,
            p95_latency_ms=percentile(a.latencies, 95),
            p99_latency_ms=percentile(a.latencies, 99),
            status_counts=dict(a.status.most_common(limits.host_status_limit)),
            result_code_counts=dict(a.codes.most_common(limits.host_code_limit)),
        )
        for host, a in ranked
    ]

def flatten_host_result_codes(hosts: Sequence[HostBreakdown]) -> List[HostResultCode]:
    flat = [
        HostResultCode(host=hb.host, result_code=code, count=n)
        for hb in hosts
        for code, n in hb.result_code_counts.items()
        if n > 0
    ]
    flat.sort(key=lambda x: x.count, reverse=True)
    return flat


@dataclass(frozen=True)
class Aggregate:
    total: int
    p95_latency_ms: Optional[float]
    p99_latency_ms: Optional[float]
    cache_hit_pct: Optional[float]
    cache_miss_pct: Optional[float]
    histogram: List[CodeCount]
    error_count: int
    error_rate_pct: Optional[float]
    top_result_class: List[ValueCount]
    top_error_result_code: List[ValueCount]
    breakdowns: Dict[str, List[ValueCount]]
    hosts: List[HostBreakdown]
    host_codes: List[HostResultCode]


def aggregate(records: Sequence[Record], limits: EngineLimits) -> Aggregate:
    total = len(records)
    latencies = [r.latency_ms for r in records]
    hits = sum(1 for r in records if r.cache_hit is True)
    misses = sum(1 for r in records if r.cache_hit is False)
    errors = [r for r in records if is_error(r)]
    hosts = host_breakdown(records, limits)

    return Aggregate(
        total=total,
        p95_latency_ms=percentile(latencies, 95),
        p99_latency_ms=percentile(latencies, 99),
        cache_hit_pct=pct(hits, total),
        cache_miss_pct=pct(misses, total),
        histogram=response_code_histogram(records),
        error_count=len(errors),
        error_rate_pct=pct(len(errors), total),
        top_result_class=value_counts((r.result_class for r in records), limits.top_n),
        top_error_result_code=value_counts((r.result_code for r in errors), limits.top_n),
        breakdowns=category_breakdowns(records, limits.top_n),
        hosts=hosts,
        host_codes=flatten_host_result_codes(hosts),
    )
