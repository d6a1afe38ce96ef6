import pytest

from edgetriage.core.config import EngineLimits
from edgetriage.data.models import Record, Timeseries
from edgetriage.metrics.timeseries import build_timeseries, choose_bucket_seconds, span_minutes

T0 = 1705312800000  # 2024-01-15T10:00:00Z

def _rec(offset_s, **kw):
    return Record(timestamp_ms=T0 + int(offset_s * 1000), **kw)

def test_fine_buckets_for_short_span():
    recs = [_rec(0), _rec(30), _rec(45 * 60)]
    ts = build_timeseries(recs, EngineLimits())
    assert ts.bucket_seconds == 60
    assert ts.start_ts == "2024-01-15T10:00:00.000Z"
    assert ts.end_ts == "2024-01-15T10:45:00.000Z"

def test_coarse_buckets_for_long_span():
    recs = [_rec(0), _rec(200 * 60)]
    ts = build_timeseries(recs, EngineLimits())
    assert ts.bucket_seconds == 900
    assert ts.start_ts == "2024-01-15T10:00:00.000Z"
    assert ts.end_ts == "2024-01-15T13:15:00.000Z"

@pytest.mark.parametrize("span,expected", [(0.0, 60), (180.0, 60), (180.5, 900), (600.0, 900)])
def test_choose_bucket_seconds(span, expected):
    assert choose_bucket_seconds(span, EngineLimits()) == expected

def test_span_ignores_missing_timestamps():
    recs = [_rec(0), _rec(120), Record(timestamp_ms=None)]
    assert span_minutes(recs) == pytest.approx(2.0)

def test_buckets_are_sparse_and_cover_every_row():
    recs = [_rec(0), _rec(10), _rec(5 * 60), _rec(5 * 60 + 59)]
    ts = build_timeseries(recs, EngineLimits())
    assert [p.ts for p in ts.points] == ["2024-01-15T10:00:00.000Z", "2024-01-15T10:05:00.000Z"]
    assert sum(p.total_requests for p in ts.points) == len(recs)

def test_point_contents():
    recs = [
        _rec(0, host="a.com", response_code=200, latency_ms=10.0, result_code="TCP_HIT"),
        _rec(5, host="a.com", response_code=502, latency_ms=30.0, result_code="ERR_CONNECT_FAIL"),
        _rec(9, host="b.com", response_code=42, result_code="TCP_HIT"),
        _rec(12, host="b.com", response_code=None),
    ]
    p = build_timeseries(recs, EngineLimits()).points[0]
    assert p.total_requests == 4
    assert p.error_count == 1
    assert p.error_rate_pct == pytest.approx(25.0)
    assert p.status_counts == {"200": 1, "502": 1}
    assert p.result_code_counts == {"TCP_HIT": 2, "ERR_CONNECT_FAIL": 1, "UNKNOWN": 1}
    assert p.host_counts == {"a.com": 2, "b.com": 2}
    assert p.p95_latency_ms == pytest.approx(29.0)

def test_point_without_latency_has_no_percentiles():
    p = build_timeseries([_rec(0)], EngineLimits()).points[0]
    assert p.p95_latency_ms is None and p.p99_latency_ms is None

def test_empty_input_gives_empty_series():
    ts = build_timeseries([], EngineLimits())
    assert ts == Timeseries.empty()
    assert ts.model_dump(by_alias=True) == {"bucketSeconds": None, "startTs": None, "endTs": None, "points": []}

def test_custom_limits_change_bucket_width():
    limits = EngineLimits(fine_span_minutes=1.0, coarse_bucket_seconds=300)
    ts = build_timeseries([_rec(0), _rec(120)], limits)
    assert ts.bucket_seconds == 300
    assert len(ts.points) == 1
