#!/usr/bin/env python3
"""
Preview the next due dates of an activity schedule.

Usage:
    python3 scripts/preview_due_dates.py --frequency Monthly --due-day 31
    python3 scripts/preview_due_dates.py --frequency "Half Yearly" --due-day 10 \
        --from 2024-06-15 --count 4

Prints one ISO date per line.  The count defaults to ``preview_count`` from
the active configuration.  Exits 1 on an invalid frequency or due day.
"""

import argparse
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from compliance_config import get_active_config  # noqa: E402
from compliance_kernel.domain.clock import SystemClock  # noqa: E402
from compliance_kernel.domain.recurrence import DUE_DAY_HINTS, FrequencyClass  # noqa: E402
from compliance_kernel.exceptions import DueDayOutOfRangeError  # noqa: E402
from compliance_kernel.logging_config import configure_logging  # noqa: E402
from compliance_kernel.services.activity_service import preview_due_dates  # noqa: E402


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Show the next due dates for a frequency and due day.",
    )
    parser.add_argument(
        "--frequency",
        required=True,
        help="One of: " + ", ".join(f.value for f in FrequencyClass),
    )
    parser.add_argument("--due-day", type=int, required=True)
    parser.add_argument("--count", type=int, default=None)
    parser.add_argument(
        "--from",
        dest="start",
        type=date.fromisoformat,
        default=None,
        help="Reference date YYYY-MM-DD (default: today)",
    )
    parser.add_argument("--config", type=Path, default=None)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    config = get_active_config(args.config)
    configure_logging(level=config.log_level)
    count = config.preview_count if args.count is None else args.count
    start = args.start or SystemClock().today()

    try:
        dates = preview_due_dates(args.frequency, args.due_day, start, count)
    except DueDayOutOfRangeError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        print(
            f"  due day must be {DUE_DAY_HINTS[FrequencyClass(exc.frequency)]}",
            file=sys.stderr,
        )
        return 1
    except ValueError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    if not dates:
        print("As Needed activities take an explicit due date; nothing to preview.")
        return 0

    for due in dates:
        print(due.isoformat())
    return 0


if __name__ == "__main__":
    sys.exit(main())
