from __future__ import annotations
from typing import List, Optional, Sequence

from edgetriage.data.models import MetricsResult, ValueCount

HEADER = "*CDN TRIAGE SUMMARY*"


def fmt_pct(x: Optional[float], digits: int = 2) -> str:
    if x is None:
        return "n/a"
    return f"{x:.{digits}f}%"

def fmt_ms(x: Optional[float]) -> str:
    if x is None:
        return "n/a"
    return f"{round(x)} ms"

def fmt_top(entries: Sequence[ValueCount]) -> str:
    if not entries:
        return "n/a"
    return ", ".join(f"{e.value} ({e.count})" for e in entries)

def _scope_lines(m: MetricsResult) -> List[str]:
    s = m.scope
    filters = ", ".join(s.filters) if s.filters else "none"
    return [
        f"• Scope: service=`{s.service}`  region=`{s.region}`  pop=`{s.pop}`",
        f"• Window: `{s.window_minutes:g}m`  • Time (UTC): `{m.time_range.start}` → `{m.time_range.end}`",
        f"• Filters: `{filters}`",
    ]

def _warning_lines(m: MetricsResult) -> List[str]:
    if not m.warnings:
        return []
    return ["", "*Warnings*", *[f"• {w}" for w in m.warnings]]

def _debug_lines(m: MetricsResult) -> List[str]:
    if m.debug is None:
        return []
    d = m.debug
    lines = [
        "",
        "```",
        "--- DEBUG ---",
        f"rows_total={d.rows_total}",
        f"rows_inWindow={d.rows_in_window}",
        f"rows_filtered={d.rows_filtered}",
        f"anchor={d.time.get('anchor')}",
        f"start={d.time.get('start')}",
        f"end={d.time.get('end')}",
    ]
    for dim, entries in d.available.items():
        lines.append(f"avail_{dim}={fmt_top(entries)}")
    lines.append(f"data_quality={d.data_quality.model_dump_json(by_alias=True)}")
    lines.append(f"warnings={' | '.join(d.warnings) if d.warnings else 'none'}")
    lines.append(f"sample={d.sample if d.sample else 'n/a'}")
    lines.append("```")
    return lines

def _quality_lines(m: MetricsResult) -> List[str]:
    w = m.data_quality.window
    items = [
        ("missing edge_status", w.missing_response_code),
        ("unknown service", w.unknown_service),
        ("unknown crc", w.unknown_result_code),
        ("unknown region", w.unknown_region),
        ("unknown pop", w.unknown_pop),
        ("unknown host", w.unknown_host),
    ]
    present = [(label, n) for label, n in items if n]
    if not present:
        return []
    return ["", "*Data Quality (window)*", *[f"• {label}: {n}" for label, n in present]]

def evidence(m: MetricsResult) -> List[str]:
    out: List[str] = []
    if m.error_count > 0:
        if m.top_error_result_code:
            top = m.top_error_result_code[0]
            out.append(f"Error responses are dominated by `{top.value}` ({top.count} of {m.error_count}).")
        out.append(f"Error responses: {m.error_count}/{m.total_requests} ({fmt_pct(m.error_rate_pct)}).")
    else:
        out.append("No 5xx responses observed.")
    out.append(f"Cache hit ratio {fmt_pct(m.cache_hit_pct)} (miss {fmt_pct(m.cache_miss_pct)}).")
    out.append(f"Latency p95/p99 TTMS = {fmt_ms(m.p95_latency_ms)}/{fmt_ms(m.p99_latency_ms)}.")
    return out

def render_summary(m: MetricsResult) -> str:
    """Render the incident-triage summary as Slack-flavoured markdown."""
    if m.total_requests == 0:
        # the anchor row is always in window, so zero here means the filters matched nothing
        lines = [HEADER, "No rows matched your filters."]
        lines += _scope_lines(m)
        if m.debug is not None:
            lines.append("• Available (this window):")
            for dim, entries in m.debug.available.items():
                lines.append(f"   - {dim}: {fmt_top(entries)}")
        lines += _warning_lines(m)
        lines += _debug_lines(m)
        return "\n".join(lines)

    histogram = "\n".join(f"• {c.code}: *{c.count}*" for c in m.response_code_histogram[:12]) or "n/a"
    b = m.breakdowns
    lines = [HEADER, *_scope_lines(m)]
    lines += _warning_lines(m)
    lines += _quality_lines(m)
    lines += [
        "",
        "*Traffic & Performance*",
        f"• Requests: *{m.total_requests}*",
        f"• P95 TTMS: *{fmt_ms(m.p95_latency_ms)}*",
        f"• P99 TTMS: *{fmt_ms(m.p99_latency_ms)}*",
        f"• Cache Hit: *{fmt_pct(m.cache_hit_pct)}*  (miss {fmt_pct(m.cache_miss_pct)})",
        "",
        "*Response Codes*",
        histogram,
        "",
        "*Top breakdowns*",
        f"• service: {fmt_top(b.get('service', []))}",
        f"• region: {fmt_top(b.get('region', []))}",
        f"• pop: {fmt_top(b.get('pop', []))}",
        f"• host: {fmt_top(b.get('host', []))}",
        f"• crc_class: {fmt_top(m.top_result_class)}",
        "",
        "*Evidence*",
        *[f"• {e}" for e in evidence(m)],
    ]
    lines += _debug_lines(m)
    return "\n".join(lines)
