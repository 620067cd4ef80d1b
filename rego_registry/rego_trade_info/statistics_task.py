#!/usr/bin/env python
"""
Trade Statistics Task that can accept optional date parameters.

Usage:
  python -m rego_registry.rego_trade_info.statistics_task [--from_date YYYY-MM-DD] [--to_date YYYY-MM-DD]

Arguments:
  --from_date  Optional start date in YYYY-MM-DD format. Defaults to one day before to_date.
  --to_date    Optional end date in YYYY-MM-DD format. Defaults to today at 00:00 UTC.
"""

import argparse
import datetime
import sys

import pytz

from rego_registry.core.database import db
from rego_registry.logging_config import logger
from rego_registry.rego_trade_info.schemas import RegoTradeInfoStatisticsRead
from rego_registry.rego_trade_info.services import record_trade_statistics


def parse_date(date_str: str) -> datetime.datetime:
    """Parse a date string in YYYY-MM-DD format to a UTC datetime object."""
    try:
        date_obj = datetime.datetime.strptime(date_str, "%Y-%m-%d")
        return date_obj.replace(tzinfo=pytz.UTC)
    except ValueError:
        logger.error(f"Invalid date format '{date_str}'. Expected format: YYYY-MM-DD")
        sys.exit(1)


def record_statistics_for_window(
    from_date: datetime.datetime | None = None,
    to_date: datetime.datetime | None = None,
) -> RegoTradeInfoStatisticsRead:
    """
    Record trade statistics for approved trades completed in the window.

    Args:
        from_date: Optional start datetime. Defaults to one day before to_date.
        to_date: Optional end datetime. Defaults to today at 00:00 UTC.
    """
    if to_date is None:
        to_datetime = datetime.datetime.now(tz=pytz.UTC).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
    else:
        to_datetime = to_date

    if from_date is None:
        from_datetime = to_datetime - datetime.timedelta(days=1)
    else:
        from_datetime = from_date

    if from_datetime >= to_datetime:
        logger.error(f"from_date {from_datetime} must be before to_date {to_datetime}")
        sys.exit(1)

    logger.info(f"Recording trade statistics from {from_datetime} to {to_datetime}")

    with db.get_db_name_to_client()["db_write"].get_session() as write_session:
        return record_trade_statistics(
            write_session,
            window_end=to_datetime,
            window=to_datetime - from_datetime,
        )


def main():
    parser = argparse.ArgumentParser(description="Trade Statistics Task")
    parser.add_argument(
        "--from_date",
        help="Start date in YYYY-MM-DD format. Defaults to one day before to_date.",
    )
    parser.add_argument(
        "--to_date",
        help="End date in YYYY-MM-DD format. Defaults to today.",
    )

    args = parser.parse_args()

    from_date = parse_date(args.from_date) if args.from_date else None
    to_date = parse_date(args.to_date) if args.to_date else None

    record_statistics_for_window(from_date, to_date)


if __name__ == "__main__":
    main()
