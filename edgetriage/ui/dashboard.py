# edgetriage/ui/dashboard.py
from __future__ import annotations
import sys, json
from pathlib import Path
from typing import Dict, Any, List, Optional

import pandas as pd
import streamlit as st
import requests
import altair as alt

# Ensure repo root in sys.path for local imports if needed
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from edgetriage.core.config import settings
from edgetriage.ui.format import fmt_value, warning_chip

API_BASE = settings.API_BASE

st.set_page_config(page_title="Edge Triage", layout="wide")
st.markdown("""
<style>
  .chip{border-radius:999px; padding:.22rem .5rem; border:1px solid rgba(255,255,255,.12); background:rgba(255,255,255,.06); font-size:.8rem;}
  .warn{background:rgba(241,196,15,.16); border-color:rgba(241,196,15,.28);}
</style>
""", unsafe_allow_html=True)

st.title("Edge Triage")
st.caption(f"API: `{API_BASE}`")

# -------------------------- Controls --------------------------
upload = st.file_uploader("Edge log CSV", type=["csv", "txt"])
csv_url = st.text_input("…or CSV URL", value="")

c1, c2, c3, c4, c5 = st.columns([1, 1, 1, 1, 0.6])
with c1:
    service = st.text_input("Service", value="all")
with c2:
    region = st.text_input("Region", value="all")
with c3:
    pop = st.text_input("POP", value="all")
with c4:
    window = st.number_input("Window (minutes)", min_value=1, value=60, step=5)
with c5:
    debug = st.toggle("Debug", value=False)

filters_raw = st.text_area("Filters (JSON list)", value="", height=70,
                           placeholder='[{"type":"range","key":"ttms","min":500}]')

def _triage(payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    try:
        r = requests.post(f"{API_BASE}/triage", json=payload, timeout=120)
    except requests.RequestException as e:
        st.error(f"API error: {e}")
        return None
    if r.status_code != 200:
        st.error(r.json().get("detail", r.text) if r.headers.get("content-type", "").startswith("application/json") else r.text)
        return None
    return r.json()

if not st.button("Run triage", type="primary"):
    st.stop()

payload: Dict[str, Any] = {
    "service": service, "region": region, "pop": pop,
    "windowMinutes": float(window), "debug": bool(debug),
    "filters": filters_raw.strip() or None,
}
if upload is not None:
    payload["csvText"] = upload.getvalue().decode("utf-8-sig", errors="replace")
elif csv_url.strip():
    payload["csvUrl"] = csv_url.strip()
else:
    st.info("Upload a CSV or give a URL.")
    st.stop()

out = _triage(payload)
if not out:
    st.stop()

m = out["metrics"]

for w in m.get("warnings", []):
    st.markdown(warning_chip(w), unsafe_allow_html=True)

k1, k2, k3, k4, k5 = st.columns(5)
k1.metric("Requests", f"{m['totalRequests']:,}")
k2.metric("Error rate", fmt_value(m.get("errorRatePct"), "%"))
k3.metric("P95 TTMS", fmt_value(m.get("p95LatencyMs"), " ms"))
k4.metric("P99 TTMS", fmt_value(m.get("p99LatencyMs"), " ms"))
k5.metric("Cache hit", fmt_value(m.get("cacheHitPct"), "%"))
st.caption(f"{m['timeRange']['start']} → {m['timeRange']['end']}")

# -------------------------- Timeseries --------------------------
ts = m.get("timeseries", {})
points: List[Dict[str, Any]] = ts.get("points", [])
st.subheader(f"Timeseries ({ts.get('bucketSeconds') or 'n/a'}s buckets)")
if points:
    df = pd.DataFrame([
        {"ts": p["ts"], "requests": p["totalRequests"], "errors": p["errorCount"],
         "p95": p["p95LatencyMs"], "p99": p["p99LatencyMs"]}
        for p in points
    ])
    df["ts"] = pd.to_datetime(df["ts"], utc=True)
    vol = (
        alt.Chart(df.melt(id_vars="ts", value_vars=["requests", "errors"]))
        .mark_bar()
        .encode(x=alt.X("ts:T", title=None), y=alt.Y("value:Q", title="Requests"), color="variable:N")
        .properties(height=200)
    )
    lat = (
        alt.Chart(df.melt(id_vars="ts", value_vars=["p95", "p99"]).dropna())
        .mark_line(point=True)
        .encode(x=alt.X("ts:T", title=None), y=alt.Y("value:Q", title="TTMS (ms)"), color="variable:N")
        .properties(height=200)
    )
    st.altair_chart(vol, use_container_width=True)
    st.altair_chart(lat, use_container_width=True)
else:
    st.info("No points.")

# -------------------------- Breakdowns --------------------------
cL, cR = st.columns(2)
with cL:
    st.subheader("Hosts")
    hosts = m.get("hostBreakdown", [])
    if hosts:
        st.dataframe(pd.DataFrame([
            {"host": h["host"], "requests": h["totalRequests"], "p95": h["p95LatencyMs"], "p99": h["p99LatencyMs"]}
            for h in hosts
        ]), hide_index=True, use_container_width=True)
with cR:
    st.subheader("Result codes by host")
    flat = m.get("hostByResultCodeFlattened", [])
    if flat:
        st.dataframe(pd.DataFrame(flat), hide_index=True, use_container_width=True)

hist = m.get("responseCodeHistogram", [])
if hist:
    st.subheader("Response codes")
    st.dataframe(pd.DataFrame(hist), hide_index=True, use_container_width=True)

with st.expander("Summary text"):
    st.code(out.get("summaryText", ""), language="markdown")

if m.get("debug"):
    with st.expander("Debug"):
        st.code(json.dumps(m["debug"], indent=2), language="json")
