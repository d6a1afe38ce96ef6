import pytest

from edgetriage.core.errors import ParseError
from edgetriage.data.models import classify_result_code
from edgetriage.ingest.loader import (
    host_from_url,
    parse_csv,
    parse_timestamp_ms,
    parse_timestamps_ms,
    region_pop_from_url,
    split_rows,
)

T0_MS = 1705314600000  # 2024-01-15T10:30:00Z

def _csv(header, *rows):
    return "\n".join([header, *rows]) + "\n"

@pytest.mark.parametrize("raw,expected", [
    ("2024-01-15T10:30:00Z", T0_MS),
    ("2024-01-15T10:30:00.000Z", T0_MS),
    ("2024-01-15T10:30:00.1234567Z", T0_MS + 123),
    ("2024-01-15T10:30:00.5", T0_MS + 500),
    ("2024-01-15T10:30:00", T0_MS),
    ("2024-01-15T12:30:00+02:00", T0_MS),
    ("2024-01-15T05:30:00.25-05:00", T0_MS + 250),
    ("2024-01-15 10:30", T0_MS),
    ("2024-01-15", T0_MS - 37_800_000),
])
def test_timestamp_parsing_is_lenient(raw, expected):
    assert parse_timestamp_ms(raw) == expected

@pytest.mark.parametrize("raw", [
    "", "   ", None, "not-a-time", "garbage", "10:00:00", "10:00:00.000Z", "15/01/2024 10:00", "2024-02-30T10:00:00Z",
])
def test_unparsable_timestamps_are_invalid(raw):
    assert parse_timestamp_ms(raw) is None

@pytest.mark.parametrize("raw,expected_ms", [
    ("2500-01-01T00:00:00Z", 16725225600000),
    ("9999-01-01T00:00:00Z", 253370764800000),
])
def test_far_future_timestamps_never_raise(raw, expected_ms):
    # outside the nanosecond range pandas may either keep the date or drop it
    assert parse_timestamp_ms(raw) in (None, expected_ms)

def test_timestamp_column_parsed_in_one_pass():
    raw = ["2024-01-15T10:30:00Z", "10:00:00", None, "2024-01-15T10:30:00.250Z", "9999-01-01T00:00:00Z"]
    out = parse_timestamps_ms(raw)
    assert len(out) == len(raw)
    assert out[:4] == [T0_MS, None, None, T0_MS + 250]
    assert parse_timestamps_ms([]) == []

def test_quoted_fields_keep_delimiters_and_escaped_quotes():
    text = _csv(
        "ts,service,url",
        '2024-01-15T10:30:00Z,"live, vod","http://edge-us-iad.example.com/a?q=""x"""',
    )
    header, rows = split_rows(text)
    assert header == ["ts", "service", "url"]
    assert rows[0]["service"] == "live, vod"
    assert rows[0]["url"] == 'http://edge-us-iad.example.com/a?q="x"'

def test_blank_lines_crlf_and_short_rows():
    text = "ts,service,status\r\n\r\n2024-01-15T10:30:00Z,live\r\n  \r\n2024-01-15T10:31:00Z,vod,200\r\n"
    recs = parse_csv(text)
    assert len(recs) == 2
    assert recs[0].response_code is None
    assert recs[1].response_code == 200

def test_aliases_resolve_to_canonical_fields():
    text = _csv(
        "timestamp,service,http_status,time_to_first_byte,hostname,crc",
        "2024-01-15T10:30:00Z,Live,503,120.5,CDN.Example.com,err_timeout",
    )
    r = parse_csv(text)[0]
    assert r.timestamp_ms == T0_MS
    assert r.service == "live"
    assert r.response_code == 503
    assert r.latency_ms == 120.5
    assert r.host == "cdn.example.com"
    assert r.result_code == "ERR_TIMEOUT"
    assert r.result_class == "error"

def test_canonical_name_wins_over_alias():
    text = _csv(
        "ts,edge_status,status,ttms_ms,ttms,delivery_service,service",
        "2024-01-15T10:30:00Z,503,200,40,90,vod,live",
    )
    r = parse_csv(text)[0]
    assert r.response_code == 503
    assert r.latency_ms == 40.0
    assert r.service == "vod"

def test_empty_canonical_falls_back_to_alias():
    text = _csv("ts,edge_status,status", "2024-01-15T10:30:00Z,,404")
    assert parse_csv(text)[0].response_code == 404

def test_numeric_parse_failures_are_missing_not_zero():
    text = _csv(
        "ts,status,ttms,edge_cache_hit",
        "2024-01-15T10:30:00Z,abc,,",
        "2024-01-15T10:30:01Z,200,0,0",
        "2024-01-15T10:30:02Z,200.5,nan,1",
    )
    a, b, c = parse_csv(text)
    assert a.response_code is None and a.latency_ms is None and a.cache_hit is None
    assert b.response_code == 200 and b.latency_ms == 0.0 and b.cache_hit is False
    assert c.response_code is None and c.latency_ms is None and c.cache_hit is True

def test_dimensions_default_to_unknown_sentinels():
    r = parse_csv(_csv("ts,status", "2024-01-15T10:30:00Z,200"))[0]
    assert (r.service, r.region, r.pop, r.host) == ("unknown",) * 4
    assert r.result_code == "UNKNOWN"
    assert r.result_class == "unknown"

def test_region_pop_and_host_derived_from_url():
    text = _csv("ts,url", "2024-01-15T10:30:00Z,https://EDGE-EU-FRA.cdn.example.net/seg/1.ts")
    r = parse_csv(text)[0]
    assert r.region == "eu"
    assert r.pop == "fra"
    assert r.host == "edge-eu-fra.cdn.example.net"

def test_explicit_region_beats_url():
    text = _csv("ts,region,pop,url", "2024-01-15T10:30:00Z,US,,http://edge-eu-fra.x.net/")
    r = parse_csv(text)[0]
    assert r.region == "us"
    assert r.pop == "fra"

def test_url_helpers():
    assert region_pop_from_url("http://origin.example.com/") == (None, None)
    assert host_from_url("") is None
    assert host_from_url("http://A.example.com:8080/x") == "a.example.com"

def test_raw_columns_kept_read_only():
    r = parse_csv(_csv("ts,upstream_bytes", "2024-01-15T10:30:00Z,2048"))[0]
    assert r.columns["upstream_bytes"] == "2048"
    with pytest.raises(TypeError):
        r.columns["upstream_bytes"] = "0"

@pytest.mark.parametrize("code,expected", [
    ("", "unknown"),
    ("unknown", "unknown"),
    ("ERR_CONNECT_FAIL", "error"),
    ("tcp_hit", "hit"),
    ("TCP_CF_HIT", "hit"),
    ("TCP_REF_FAIL_HIT", "hit"),
    ("TCP_REFRESH_HIT", "hit"),
    ("TCP_MISS", "miss"),
    ("TCP_REFRESH_MISS", "miss"),
    ("TCP_CLIENT_REFRESH", "client"),
    ("TCP_DENIED", "other"),
])
def test_result_class(code, expected):
    assert classify_result_code(code) == expected

@pytest.mark.parametrize("text", ["", "   \n  ", "ts,service,status\n", "ts,service\n\n\n"])
def test_empty_or_header_only_input_raises(text):
    with pytest.raises(ParseError):
        parse_csv(text)
