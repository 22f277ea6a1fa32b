"""Commerce database management CLI.

Creates and drops the relational schema of the commerce domain when it is
configured with a SQL provider. Reuses the setup_db/drop_db utilities in
``commerce.utils.db``.

Usage:
    python src/manage.py setup-db   # Create all tables
    python src/manage.py drop-db    # Drop all tables
"""

import argparse
import sys

import structlog

logger = structlog.get_logger(__name__)


def setup_database():
    """Create the commerce schema."""
    from commerce.domain import commerce
    from commerce.utils.db import setup_db

    logger.info("Initializing commerce domain")
    commerce.init()
    logger.info("Creating commerce database schema")
    setup_db(commerce)
    logger.info("Commerce schema ready")


def drop_database():
    """Drop the commerce schema."""
    from commerce.domain import commerce
    from commerce.utils.db import drop_db

    logger.info("Initializing commerce domain")
    commerce.init()
    logger.info("Dropping commerce database schema")
    drop_db(commerce)
    logger.info("Commerce schema dropped")


def main():
    from commerce.utils.logging import configure_logging

    parser = argparse.ArgumentParser(description="Commerce database management")
    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("setup-db", help="Create all database tables")
    subparsers.add_parser("drop-db", help="Drop all database tables")

    args = parser.parse_args()
    configure_logging()

    if args.command == "setup-db":
        setup_database()
    elif args.command == "drop-db":
        drop_database()
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
