import argparse
import json
import sys
from datetime import datetime, timedelta

from clinicops.core.logging_config import setup_logging
from clinicops.db import SessionLocal, create_schema
from clinicops.models import utc_now_naive
from clinicops.reporting import analytics, workload_analysis
from clinicops.store import SqlDataStore


def _parse_dt(raw: str | None, fallback: datetime) -> datetime:
    if not raw:
        return fallback
    return datetime.fromisoformat(raw)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Print therapist capacity analytics for a date window as JSON"
    )
    parser.add_argument("--date-from", default=None, help="ISO datetime, default 30 days ago")
    parser.add_argument("--date-to", default=None, help="ISO datetime, default now")
    parser.add_argument("--therapist-id", type=int, default=None)
    parser.add_argument(
        "--analyze",
        action="store_true",
        help="include projections and recommendations instead of the plain analytics view",
    )
    args = parser.parse_args(argv)

    setup_logging(stream=sys.stderr)
    now = utc_now_naive()
    date_from = _parse_dt(args.date_from, now - timedelta(days=30))
    date_to = _parse_dt(args.date_to, now)
    create_schema()
    store = SqlDataStore(SessionLocal)

    if args.analyze or args.therapist_id is not None:
        report = workload_analysis(store, date_from, date_to, therapist_id=args.therapist_id)
    else:
        report = analytics(store, date_from, date_to)
    print(json.dumps(report, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
