from __future__ import annotations

import argparse
import json
import sys
from typing import Optional

from edgetriage.core.config import settings
from edgetriage.core.errors import TriageError
from edgetriage.core.logging import setup_logging
from edgetriage.ingest.fetch import load_csv_text
from edgetriage.metrics.engine import run_triage
from edgetriage.metrics.summary import render_summary


def _run_from_args(args: argparse.Namespace):
    csv_text = load_csv_text(args.csv)
    return run_triage(
        csv_text,
        service=args.service,
        region=args.region,
        pop=args.pop,
        window_minutes=args.window,
        filters=args.filters,
        debug=args.debug,
        limits=settings.limits(),
    )


def cmd_run(args: argparse.Namespace) -> None:
    result = _run_from_args(args)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(render_summary(result))


def cmd_quality(args: argparse.Namespace) -> None:
    result = _run_from_args(args)
    print(json.dumps({
        "dataQuality": result.data_quality.model_dump(by_alias=True),
        "warnings": result.warnings,
    }, indent=2))


def _add_common(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--csv", required=True, help="CSV file path or http(s) URL")
    sp.add_argument("--service", default="all")
    sp.add_argument("--region", default="all")
    sp.add_argument("--pop", default="all")
    sp.add_argument("--window", type=float, default=settings.WINDOW_MINUTES, help="Window length in minutes")
    sp.add_argument("--filters", default=None, help='JSON list, e.g. \'[{"type":"range","key":"ttms","min":500}]\'')
    sp.add_argument("--debug", action="store_true")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="edgetriage", description="Edge log triage CLI")
    p.add_argument("--log-level", default=None)
    sub = p.add_subparsers(dest="cmd", required=True)

    rp = sub.add_parser("run", help="Compute windowed metrics and print the triage summary")
    _add_common(rp)
    rp.add_argument("--json", action="store_true", help="Print the metrics object instead of the summary")
    rp.set_defaults(func=cmd_run)

    qp = sub.add_parser("quality", help="Print data-quality counters and warnings")
    _add_common(qp)
    qp.set_defaults(func=cmd_quality)

    return p


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level or "WARNING")
    try:
        args.func(args)
    except TriageError as e:
        print(f"[error] {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
