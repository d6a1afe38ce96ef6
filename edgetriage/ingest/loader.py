from __future__ import annotations
import csv
import io
import logging
import math
import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import pandas as pd

from edgetriage.core.errors import ParseError
from edgetriage.data.models import Record, UNKNOWN, UNKNOWN_CODE

log = logging.getLogger("ingest.loader")

# canonical field -> candidate column names, canonical spelling first
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "ts": ("ts", "timestamp"),
    "service": ("delivery_service", "service"),
    "region": ("region",),
    "pop": ("pop",),
    "host": ("host", "req_host", "hostname"),
    "edge_status": ("edge_status", "status", "http_status", "response_code"),
    "ttms_ms": ("ttms_ms", "ttms", "time_to_first_byte"),
    "edge_cache_hit": ("edge_cache_hit", "cache_hit"),
    "crc": ("crc", "result_code", "error_reason"),
    "url": ("url",),
}

_EDGE_RE = re.compile(r"://edge-([a-z0-9]+)-([a-z0-9]+)\b", re.IGNORECASE)
_HOST_RE = re.compile(r"^https?://([^/]+)", re.IGNORECASE)
_TS_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})"
    r"(?:[T ](?P<time>\d{2}:\d{2}(?::\d{2})?)(?:\.(?P<frac>\d+))?)?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})?$"
)

_HIT_TOKENS = {"1", "1.0", "true", "hit", "yes"}
_MISS_TOKENS = {"0", "0.0", "false", "miss", "no"}


def _pick(row: Mapping[str, str], field: str) -> Optional[str]:
    for name in FIELD_ALIASES[field]:
        v = row.get(name)
        if v is not None and v.strip():
            return v.strip()
    return None

def _lower(v: Optional[str]) -> str:
    return (v or "").strip().lower()

def _to_float(v: Optional[str]) -> Optional[float]:
    if v is None:
        return None
    try:
        n = float(v)
    except ValueError:
        return None
    return n if math.isfinite(n) else None

def _to_code(v: Optional[str]) -> Optional[int]:
    n = _to_float(v)
    if n is None or not n.is_integer():
        return None
    return int(n)

def _to_cache_hit(v: Optional[str]) -> Optional[bool]:
    s = _lower(v)
    if s in _HIT_TOKENS:
        return True
    if s in _MISS_TOKENS:
        return False
    return None

def parse_timestamps_ms(raw: Sequence[Optional[str]]) -> List[Optional[int]]:
    """Parse a column of ISO-like timestamps to epoch milliseconds in one pass.

    A full calendar date is required; time-only strings, impossible dates and
    anything pandas cannot represent come back as None. Missing offsets are UTC.
    """
    out: List[Optional[int]] = [None] * len(raw)
    if not out:
        return out
    s = pd.Series(list(raw), dtype="object").fillna("").astype(str).str.strip()
    parts = s.str.extract(_TS_RE)
    parts = parts[parts["date"].notna()]
    if parts.empty:
        return out

    time = parts["time"].fillna("00:00:00")
    time = time.where(time.str.len() > 5, time + ":00")
    ms = (parts["frac"].fillna("") + "000").str[:3]
    iso = parts["date"] + "T" + time + "." + ms + parts["tz"].fillna("Z")

    stamps = pd.to_datetime(iso, utc=True, errors="coerce", format="ISO8601")
    # whole ms since epoch, never through nanoseconds
    naive = stamps.dt.tz_localize(None).dt.as_unit("ms")
    values = naive.to_numpy().astype("int64")
    for i, ok, v in zip(naive.index, naive.notna(), values):
        if ok:
            out[i] = int(v)
    return out

def parse_timestamp_ms(raw: Optional[str]) -> Optional[int]:
    return parse_timestamps_ms([raw])[0]

def region_pop_from_url(url: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    m = _EDGE_RE.search(url or "")
    if not m:
        return None, None
    return m.group(1).lower(), m.group(2).lower()

def host_from_url(url: Optional[str]) -> Optional[str]:
    s = (url or "").strip()
    if not s:
        return None
    try:
        host = urlsplit(s).hostname
    except ValueError:
        host = None
    if host:
        return host.lower()
    m = _HOST_RE.match(s)
    return m.group(1).lower() if m else None


def split_rows(csv_text: str) -> Tuple[List[str], List[Dict[str, str]]]:
    reader = csv.reader(io.StringIO(csv_text.lstrip("\ufeff").strip()))
    header: Optional[List[str]] = None
    rows: List[Dict[str, str]] = []
    for cells in reader:
        if not cells or not any(c.strip() for c in cells):
            continue
        if header is None:
            header = [c.strip() for c in cells]
            continue
        rows.append({name: (cells[i].strip() if i < len(cells) else "") for i, name in enumerate(header)})
    return header or [], rows

def normalize_row(row: Mapping[str, str], timestamp_ms: Optional[int] = None) -> Record:
    url = _pick(row, "url")
    region = _lower(_pick(row, "region"))
    pop = _lower(_pick(row, "pop"))
    if not region or not pop:
        url_region, url_pop = region_pop_from_url(url)
        region = region or url_region or ""
        pop = pop or url_pop or ""
    host = _lower(_pick(row, "host")) or host_from_url(url) or ""
    raw_ts = _pick(row, "ts") or ""

    return Record(
        timestamp_ms=timestamp_ms,
        service=_lower(_pick(row, "service")) or UNKNOWN,
        region=region or UNKNOWN,
        pop=pop or UNKNOWN,
        host=host or UNKNOWN,
        response_code=_to_code(_pick(row, "edge_status")),
        latency_ms=_to_float(_pick(row, "ttms_ms")),
        cache_hit=_to_cache_hit(_pick(row, "edge_cache_hit")),
        result_code=(_pick(row, "crc") or "").upper() or UNKNOWN_CODE,
        raw_url=url,
        raw_ts=raw_ts,
        columns=row,
    )

def normalize_rows(rows: Sequence[Mapping[str, str]]) -> List[Record]:
    stamps = parse_timestamps_ms([_pick(r, "ts") for r in rows])
    return [normalize_row(r, ts) for r, ts in zip(rows, stamps)]

def parse_csv(csv_text: Optional[str]) -> List[Record]:
    if csv_text is None or not str(csv_text).strip():
        raise ParseError("No CSV text found.")
    header, rows = split_rows(str(csv_text))
    if not rows:
        raise ParseError("Parsed 0 rows from CSV. Check delimiter/quotes/header line.")

    records = normalize_rows(rows)
    invalid = sum(1 for r in records if not r.has_valid_ts)
    log.info(
        "parse_csv",
        extra={"stage": "ingest", "columns": len(header), "rows": len(records), "invalid_ts": invalid},
    )
    return records
