#!/usr/bin/env python
"""
REGO Expiry Task that can accept an optional reference date.

Usage:
  python -m rego_registry.rego.expiry_task [--as_of YYYY-MM-DD]

Arguments:
  --as_of  Optional reference date in YYYY-MM-DD format. Defaults to now.
"""

import argparse
import datetime
import sys

import pytz

from rego_registry.core.database import db
from rego_registry.logging_config import logger
from rego_registry.rego.services import expire_rego_groups


def parse_date(date_str: str) -> datetime.datetime:
    """Parse a date string in YYYY-MM-DD format to a UTC datetime object."""
    try:
        date_obj = datetime.datetime.strptime(date_str, "%Y-%m-%d")
        return date_obj.replace(tzinfo=pytz.UTC)
    except ValueError:
        logger.error(f"Invalid date format '{date_str}'. Expected format: YYYY-MM-DD")
        sys.exit(1)


def expire_all_rego_groups(as_of: datetime.datetime | None = None) -> int:
    """Expire every active REGO group whose expiry date has passed.

    Args:
        as_of: Optional reference datetime. Defaults to now.
    """
    as_of = as_of or datetime.datetime.now(tz=pytz.UTC)
    logger.info(f"Expiring REGO groups as of {as_of}")

    with db.get_db_name_to_client()["db_write"].get_session() as write_session:
        return expire_rego_groups(write_session, as_of=as_of)


def main():
    parser = argparse.ArgumentParser(description="REGO Expiry Task")
    parser.add_argument(
        "--as_of",
        help="Reference date in YYYY-MM-DD format. Defaults to now.",
    )

    args = parser.parse_args()

    as_of = parse_date(args.as_of) if args.as_of else None

    expire_all_rego_groups(as_of)


if __name__ == "__main__":
    main()
