from __future__ import annotations
import json
import logging
import math
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from pydantic import TypeAdapter, ValidationError

from edgetriage.data.models import (
    EqualityFilter,
    FilterSpec,
    MembershipFilter,
    RangeFilter,
    Record,
)
from edgetriage.ingest.loader import FIELD_ALIASES

log = logging.getLogger("metrics.filters")

DIMENSIONS = ("service", "region", "pop")

_spec_adapter: TypeAdapter = TypeAdapter(FilterSpec)

# every accepted spelling of a normalized field -> Record attribute
_CANONICAL_ATTRS = {
    "ts": "timestamp_ms",
    "service": "service",
    "region": "region",
    "pop": "pop",
    "host": "host",
    "edge_status": "response_code",
    "ttms_ms": "latency_ms",
    "edge_cache_hit": "cache_hit",
    "crc": "result_code",
    "url": "raw_url",
}
_KEY_TO_ATTR: Dict[str, str] = {}
for _field, _attr in _CANONICAL_ATTRS.items():
    for _name in FIELD_ALIASES[_field]:
        _KEY_TO_ATTR[_name] = _attr
for _attr in (
    "timestamp_ms", "response_code", "latency_ms", "cache_hit", "result_code", "result_class", "raw_url",
):
    _KEY_TO_ATTR[_attr] = _attr
_KEY_TO_ATTR.update({
    "timestampMs": "timestamp_ms",
    "responseCode": "response_code",
    "latencyMs": "latency_ms",
    "cacheHit": "cache_hit",
    "resultCode": "result_code",
    "resultClass": "result_class",
    "crc_class": "result_class",
    "rawUrl": "raw_url",
})


def field_value(record: Record, key: str) -> Any:
    attr = _KEY_TO_ATTR.get(key)
    if attr is not None:
        v = getattr(record, attr)
        if isinstance(v, bool):
            return int(v)
        return v
    return record.columns.get(key)

def _text(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, bool):
        v = int(v)
    if isinstance(v, float) and v.is_integer():
        v = int(v)
    return str(v).strip().lower()

def _number(v: Any) -> Optional[float]:
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    try:
        n = float(v)
    except (TypeError, ValueError):
        return None
    return n if math.isfinite(n) else None


def is_wildcard(expected: Optional[str]) -> bool:
    s = (expected or "").strip().lower()
    return not s or s == "all"

def match_dim(value: str, expected: Optional[str]) -> bool:
    if is_wildcard(expected):
        return True
    return _text(value) == _text(expected)

def passes_filter(record: Record, spec: Any) -> bool:
    v = field_value(record, spec.key)

    if isinstance(spec, RangeFilter):
        n = _number(v)
        if n is None:
            return False
        if spec.min is not None and n < spec.min:
            return False
        if spec.max is not None and n > spec.max:
            return False
        return True

    if isinstance(spec, EqualityFilter):
        return _text(v) == _text(spec.value)

    if isinstance(spec, MembershipFilter):
        return _text(v) in {_text(x) for x in spec.values}

    return True


def parse_filters(raw: Union[str, Iterable[Any], None]) -> List[Any]:
    """Validate declarative filter input into FilterSpec variants.

    Accepts a JSON string, a list of dicts, or already-built specs. Invalid
    JSON yields no filters; malformed entries are dropped with a warning.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        if not raw.strip():
            return []
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            log.warning("filters_invalid_json", extra={"stage": "filters"})
            return []
    if isinstance(raw, dict):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        log.warning("filters_not_a_list", extra={"stage": "filters", "kind": type(raw).__name__})
        return []

    specs: List[Any] = []
    for i, entry in enumerate(raw):
        if isinstance(entry, (RangeFilter, EqualityFilter, MembershipFilter)):
            specs.append(entry)
            continue
        try:
            specs.append(_spec_adapter.validate_python(entry))
        except ValidationError as e:
            log.warning(
                "filter_dropped",
                extra={"stage": "filters", "index": i, "errors": e.error_count()},
            )
    return specs

def apply_dimensions(records: Sequence[Record], service: str, region: str, pop: str) -> List[Record]:
    wanted = {"service": service, "region": region, "pop": pop}
    return [r for r in records if all(match_dim(getattr(r, d), wanted[d]) for d in DIMENSIONS)]

def apply_filters(records: Sequence[Record], specs: Sequence[Any]) -> List[Record]:
    out = list(records)
    for spec in specs:
        out = [r for r in out if passes_filter(r, spec)]
    return out

def filter_records(
    records: Sequence[Record],
    service: str = "all",
    region: str = "all",
    pop: str = "all",
    specs: Sequence[Any] = (),
) -> List[Record]:
    return apply_filters(apply_dimensions(records, service, region, pop), specs)
