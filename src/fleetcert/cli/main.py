"""fleetcert command-line entry point.

Each subcommand runs exactly one unit of work and exits, which is how
an invocation host (scheduler, queue trigger, device-message rule)
drives fleetcert.

Usage::

    fleetcert -c config.yaml --validate-only
    fleetcert -c config.yaml activate --event event.json
    fleetcert -c config.yaml scan --notification -
    fleetcert -c config.yaml consume --message message.json
    fleetcert -c config.yaml rotate --request request.json
    fleetcert -c config.yaml db status
    python -m fleetcert -c config.yaml db migrate
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

log = logging.getLogger(__name__)


def _get_version() -> str:
    from fleetcert import __version__  # noqa: PLC0415

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fleetcert",
        description="fleetcert: device certificate lifecycle orchestrator",
    )
    parser.add_argument(
        "-c",
        "--config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (YAML or JSON).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Enable debug output (full tracebacks, verbose logging).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        default=False,
        help="Print the Prometheus metrics snapshot to stderr after the command.",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command")

    activate = subparsers.add_parser("activate", help="Admit one registered certificate")
    activate.add_argument("--event", required=True, metavar="PATH|-", help="Registration event")

    scan = subparsers.add_parser("scan", help="Start a renewal scan from an audit notification")
    scan.add_argument(
        "--notification",
        required=True,
        metavar="PATH|-",
        help="Audit notification",
    )

    consume = subparsers.add_parser("consume", help="Process one renewal queue message")
    consume.add_argument("--message", required=True, metavar="PATH|-", help="Queue message body")

    rotate = subparsers.add_parser("rotate", help="Handle one device rotation action")
    rotate.add_argument("--request", required=True, metavar="PATH|-", help="Device action")

    db_parser = subparsers.add_parser("db", help="Renewal ledger database management")
    db_sub = db_parser.add_subparsers(dest="db_command")
    db_sub.add_parser("status", help="Check database connectivity")
    db_sub.add_parser("migrate", help="Create the renewal ledger table")

    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"fleetcert: error: {message}", file=sys.stderr)  # noqa: T201


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, runs one command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- resolve config path ---
    config_path = Path(args.config)
    if not config_path.is_file():
        _print_error(f"configuration file not found: {config_path}")
        sys.exit(1)

    # -- bootstrap logging early (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    # -- load & validate config ---
    try:
        from fleetcert.config import ConfigValidationError, FleetCertConfig  # noqa: PLC0415

        config = FleetCertConfig(
            config_file=str(config_path),
            schema_file="bundled",
        )
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)
    except Exception as exc:
        if args.debug:
            raise
        _print_error(f"failed to load configuration: {exc}")
        sys.exit(1)

    # -- replace bootstrap logging with structured logging ---
    from fleetcert.logging import configure_logging  # noqa: PLC0415

    configure_logging(config.settings.logging)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    command = args.command
    if command in ("activate", "scan", "consume", "rotate"):
        from fleetcert.cli.commands.events import run_event  # noqa: PLC0415

        run_event(config, args)
    elif command == "db":
        from fleetcert.cli.commands.db import run_db  # noqa: PLC0415

        run_db(config, args)
    else:
        parser.print_help(sys.stderr)
        sys.exit(1)


def _print_settings_summary(config) -> None:  # noqa: ANN001
    """Print a short summary of the loaded configuration."""
    s = config.settings
    lines = [
        f"config:        {config.data.get('_source', '?')}",
        f"ca backend:    {s.ca.backend}",
        f"registry mode: {s.registry.mode}",
        f"csr mode:      {s.rotation.csr_mode}",
        f"renewal queue: {s.renewal.queue_url or '(unset)'}",
        f"page size:     {s.renewal.page_size}",
        f"database:      {s.database.user}@{s.database.host}:{s.database.port}/"
        f"{s.database.database}",
    ]
    print("\n".join(lines))  # noqa: T201
