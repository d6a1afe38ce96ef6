import pytest

from edgetriage.metrics.engine import run_triage
from edgetriage.metrics.summary import HEADER, fmt_ms, fmt_pct, render_summary

CSV = "\n".join([
    "ts,service,region,pop,status,ttms,crc,host",
    "2024-01-15T10:00:00Z,live,us,iad,200,10,TCP_HIT,a.com",
    "2024-01-15T10:00:30Z,live,us,iad,200,20,TCP_MISS,a.com",
    "2024-01-15T10:01:30Z,live,us,iad,503,30,ERR_READ_TIMEOUT,b.com",
])

@pytest.mark.parametrize("x,expected", [(None, "n/a"), (33.3333, "33.33%"), (0.0, "0.00%")])
def test_fmt_pct(x, expected):
    assert fmt_pct(x) == expected

@pytest.mark.parametrize("x,expected", [(None, "n/a"), (29.8, "30 ms"), (12.0, "12 ms")])
def test_fmt_ms(x, expected):
    assert fmt_ms(x) == expected

def test_full_summary():
    text = render_summary(run_triage(CSV, service="live"))
    lines = text.splitlines()
    assert lines[0] == HEADER
    assert "• Requests: *3*" in lines
    assert "• P95 TTMS: *29 ms*" in lines
    assert "• 200: *2*" in lines
    assert "• 503: *1*" in lines
    assert "• Error responses are dominated by `ERR_READ_TIMEOUT` (1 of 1)." in lines
    assert "• Error responses: 1/3 (33.33%)." in lines
    assert "• host: a.com (2), b.com (1)" in lines
    assert "Service filter 'live' did not reduce dataset (possible schema mismatch)." in text
    assert "--- DEBUG ---" not in text

def test_summary_without_errors():
    csv = CSV.replace(",503,", ",404,")
    text = render_summary(run_triage(csv))
    assert "• No 5xx responses observed." in text.splitlines()

def test_summary_when_filters_match_nothing():
    text = render_summary(run_triage(CSV, service="vod", debug=True))
    assert "No rows matched your filters." in text
    assert "   - service: live (3)" in text
    assert "Filters removed all rows. Check available values in DEBUG." in text
    assert "rows_filtered=0" in text
    assert "*Traffic & Performance*" not in text

def test_debug_block_appended():
    text = render_summary(run_triage(CSV, debug=True))
    assert text.splitlines()[-1] == "```"
    assert "rows_total=3" in text
    assert "anchor=2024-01-15T10:01:30.000Z" in text
