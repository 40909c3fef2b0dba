"""Database management subcommands."""

from __future__ import annotations

import logging
import sys

log = logging.getLogger(__name__)


def run_db(config, args) -> None:  # noqa: ANN001
    """Handle db subcommands."""
    if args.db_command == "status":
        _db_status(config)
    elif args.db_command == "migrate":
        _db_migrate(config)
    else:
        print("fleetcert: error: expected 'db status' or 'db migrate'", file=sys.stderr)  # noqa: T201
        sys.exit(1)


def _db_status(config) -> None:  # noqa: ANN001
    """Check database connectivity and ledger table presence."""
    from fleetcert.db import init_database  # noqa: PLC0415

    try:
        db = init_database(config.settings.database, apply_schema=False)
        db.fetch_value("SELECT 1")
        tables = db.fetch_value(
            "SELECT count(*) FROM information_schema.tables "
            "WHERE table_schema = 'public' AND table_name = 'certificate_renewals'",
        )
        renewals = db.fetch_value("SELECT count(*) FROM certificate_renewals") if tables else 0
    except Exception as exc:
        log.exception("Database status check failed")
        print(f"database: unreachable ({exc})", file=sys.stderr)  # noqa: T201
        sys.exit(1)

    print("database: ok")  # noqa: T201
    if tables:
        print(f"ledger:   {renewals} renewal(s) recorded")  # noqa: T201
    else:
        print("ledger:   table missing (run 'fleetcert db migrate')")  # noqa: T201


def _db_migrate(config) -> None:  # noqa: ANN001
    """Create the renewal ledger table."""
    from fleetcert.db import init_database  # noqa: PLC0415

    try:
        init_database(config.settings.database, apply_schema=True)
    except Exception as exc:
        log.exception("Database migration failed")
        print(f"migration failed: {exc}", file=sys.stderr)  # noqa: T201
        sys.exit(1)
    print("ledger schema applied")  # noqa: T201
