"""Apply pending Alembic migrations: python -m eventos.cli.migrate"""

import argparse
import logging
import sys

from dotenv import load_dotenv

from eventos.database.migration_runner import (
    DEFAULT_CFG_PATH,
    DEFAULT_SCRIPT_LOCATION,
    upgrade_head,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Upgrade the eventos database to the latest revision")
    parser.add_argument("--url", help="SQLAlchemy URL (default: DATABASE_URL / DB_* env vars)")
    parser.add_argument("--config", default=DEFAULT_CFG_PATH, help="path to alembic.ini")
    parser.add_argument("--script-location", default=DEFAULT_SCRIPT_LOCATION)
    parser.add_argument("--lock-timeout", type=int, default=120, help="advisory lock timeout in seconds")
    parser.add_argument("--no-verify", action="store_true", help="skip the alembic_version check")
    return parser


def main(argv=None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)

    url = args.url
    if not url:
        from eventos.database.connection import get_database_url

        url = get_database_url()

    try:
        upgrade_head(
            sqlalchemy_url=url,
            cfg_path=args.config,
            script_location=args.script_location,
            lock_timeout_seconds=args.lock_timeout,
            verify_revision=not args.no_verify,
        )
    except Exception as e:
        logger.error(f"Migration failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
