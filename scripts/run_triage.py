from __future__ import annotations

import sys
from pathlib import Path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import argparse
import json
from edgetriage.core.config import settings
from edgetriage.core.errors import TriageError
from edgetriage.ingest.fetch import read_csv_file
from edgetriage.metrics.engine import run_triage

def main():
    p = argparse.ArgumentParser(description="Dump triage metrics JSON for a CSV export.")
    p.add_argument("csv")
    p.add_argument("--service", default="all")
    p.add_argument("--region", default="all")
    p.add_argument("--pop", default="all")
    p.add_argument("--window", type=float, default=settings.WINDOW_MINUTES)
    p.add_argument("--filters", default=None)
    p.add_argument("--out", default=None, help="Write JSON here instead of stdout")
    args = p.parse_args()

    result = run_triage(
        read_csv_file(args.csv),
        service=args.service, region=args.region, pop=args.pop,
        window_minutes=args.window, filters=args.filters,
        limits=settings.limits(),
    )
    payload = json.dumps(result.to_dict(), indent=2)
    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(payload)
        print(f"Wrote: {out}")
    else:
        print(payload)

if __name__ == "__main__":
    try:
        main()
    except TriageError as e:
        print(f"[error] {e}", file=sys.stderr)
        sys.exit(1)
