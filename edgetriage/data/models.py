from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN = "unknown"
UNKNOWN_CODE = "UNKNOWN"

HIT_CODES = frozenset({"TCP_HIT", "TCP_CF_HIT", "TCP_REF_FAIL_HIT", "TCP_REFRESH_HIT"})
MISS_CODES = frozenset({"TCP_MISS", "TCP_REFRESH_MISS"})
CLIENT_CODES = frozenset({"TCP_CLIENT_REFRESH"})


def classify_result_code(code: Optional[str]) -> str:
    c = (code or "").strip().upper()
    if not c or c == UNKNOWN_CODE:
        return "unknown"
    if c.startswith("ERR_"):
        return "error"
    if c in HIT_CODES:
        return "hit"
    if c in MISS_CODES:
        return "miss"
    if c in CLIENT_CODES:
        return "client"
    return "other"


@dataclass(frozen=True)
class Record:
    timestamp_ms: Optional[int]
    service: str = UNKNOWN
    region: str = UNKNOWN
    pop: str = UNKNOWN
    host: str = UNKNOWN
    response_code: Optional[int] = None
    latency_ms: Optional[float] = None
    cache_hit: Optional[bool] = None
    result_code: str = UNKNOWN_CODE
    raw_url: Optional[str] = None
    raw_ts: str = ""
    columns: Mapping[str, str] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.columns, MappingProxyType):
            object.__setattr__(self, "columns", MappingProxyType(dict(self.columns)))

    @property
    def result_class(self) -> str:
        return classify_result_code(self.result_code)

    @property
    def has_valid_ts(self) -> bool:
        return self.timestamp_ms is not None

    def compact(self) -> Dict[str, Any]:
        return {
            "ts": self.raw_ts,
            "service": self.service,
            "region": self.region,
            "pop": self.pop,
            "host": self.host,
            "resultCode": self.result_code,
            "resultClass": self.result_class,
            "responseCode": self.response_code,
            "latencyMs": self.latency_ms,
            "cacheHit": self.cache_hit,
            "url": self.raw_url,
        }


# ---------------------------------------------------------------- filters

class RangeFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["range"] = "range"
    key: str = Field(..., min_length=1)
    min: Optional[float] = None
    max: Optional[float] = None

    def describe(self) -> str:
        lo = "" if self.min is None else f"{self.min:g}"
        hi = "" if self.max is None else f"{self.max:g}"
        return f"{self.key}={lo}-{hi}"


class EqualityFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["eq"]
    key: str = Field(..., min_length=1)
    value: Union[str, int, float, bool, None] = None

    def describe(self) -> str:
        return f"{self.key}={self.value}"


class MembershipFilter(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["in"]
    key: str = Field(..., min_length=1)
    values: List[Union[str, int, float, bool]] = Field(default_factory=list)

    def describe(self) -> str:
        return f"{self.key} in ({','.join(str(v) for v in self.values)})"


FilterSpec = Annotated[Union[RangeFilter, EqualityFilter, MembershipFilter], Field(discriminator="type")]


# ---------------------------------------------------------------- result

class _Out(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeRange(_Out):
    start: str
    end: str


class CodeCount(_Out):
    code: int
    count: int


class ValueCount(_Out):
    value: str
    count: int


class HostBreakdown(_Out):
    host: str
    total_requests: int
    p95_latency_ms: Optional[float] = None
    p99_latency_ms: Optional[float] = None
    status_counts: Dict[str, int] = Field(default_factory=dict)
    result_code_counts: Dict[str, int] = Field(default_factory=dict)


class HostResultCode(_Out):
    host: str
    result_code: str
    count: int


class TimeseriesPoint(_Out):
    ts: str
    total_requests: int
    error_count: int
    error_rate_pct: float
    p95_latency_ms: Optional[float] = None
    p99_latency_ms: Optional[float] = None
    status_counts: Dict[str, int] = Field(default_factory=dict)
    result_code_counts: Dict[str, int] = Field(default_factory=dict)
    host_counts: Dict[str, int] = Field(default_factory=dict)


class Timeseries(_Out):
    bucket_seconds: Optional[int] = None
    start_ts: Optional[str] = None
    end_ts: Optional[str] = None
    points: List[TimeseriesPoint] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "Timeseries":
        return cls()


class QualityCounters(_Out):
    invalid_ts: int = 0
    missing_response_code: int = 0
    unknown_service: int = 0
    unknown_region: int = 0
    unknown_pop: int = 0
    unknown_host: int = 0
    unknown_result_code: int = 0


class DataQuality(_Out):
    all: QualityCounters
    window: QualityCounters


class Scope(_Out):
    service: str
    region: str
    pop: str
    window_minutes: float
    filters: List[str] = Field(default_factory=list)


class DebugInfo(_Out):
    rows_total: int
    rows_in_window: int
    rows_filtered: int
    time: Dict[str, str]
    available: Dict[str, List[ValueCount]]
    data_quality: DataQuality
    warnings: List[str]
    sample: Optional[Dict[str, Any]] = None


class MetricsResult(_Out):
    scope: Scope
    time_range: TimeRange
    total_requests: int = 0
    p95_latency_ms: Optional[float] = None
    p99_latency_ms: Optional[float] = None
    cache_hit_pct: Optional[float] = None
    cache_miss_pct: Optional[float] = None
    response_code_histogram: List[CodeCount] = Field(default_factory=list)
    error_count: int = 0
    error_rate_pct: Optional[float] = None
    top_result_class: List[ValueCount] = Field(default_factory=list)
    top_error_result_code: List[ValueCount] = Field(default_factory=list)
    breakdowns: Dict[str, List[ValueCount]] = Field(default_factory=dict)
    host_breakdown: List[HostBreakdown] = Field(default_factory=list)
    host_by_result_code_flattened: List[HostResultCode] = Field(default_factory=list)
    timeseries: Timeseries = Field(default_factory=Timeseries.empty)
    warnings: List[str] = Field(default_factory=list)
    data_quality: DataQuality
    debug: Optional[DebugInfo] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.model_dump(by_alias=True)
        if self.debug is None:
            data.pop("debug", None)
        return data
