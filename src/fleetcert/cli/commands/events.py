"""Unit-of-work subcommands: activate, scan, consume, rotate.

Every command reads one JSON document from a file (or ``-`` for stdin),
builds the :class:`~fleetcert.app.context.Container`, runs the matching
service once and prints its outcome.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn

log = logging.getLogger(__name__)


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _read_json(source: str) -> object:
    try:
        return json.loads(_read_input(source))
    except json.JSONDecodeError as exc:
        _fail(f"input is not valid JSON: {exc}")


def _fail(message: str) -> NoReturn:
    print(f"fleetcert: error: {message}", file=sys.stderr)  # noqa: T201
    sys.exit(1)


def run_event(config, args) -> None:  # noqa: ANN001
    """Dispatch one unit-of-work subcommand."""
    from fleetcert.app.context import Container  # noqa: PLC0415
    from fleetcert.core.errors import FleetCertError  # noqa: PLC0415

    settings = config.settings
    try:
        if args.command == "consume":
            from fleetcert.db import init_database  # noqa: PLC0415

            container = Container(settings, db=init_database(settings.database))
        else:
            container = Container(settings)

        try:
            result = _run(container, args)
        finally:
            if args.metrics:
                print(container.metrics.export(), end="", file=sys.stderr)  # noqa: T201
    except FleetCertError as exc:
        if args.debug:
            raise
        log.debug("Command %s failed", args.command, exc_info=True)
        _fail(str(exc))
    except OSError as exc:
        if args.debug:
            raise
        _fail(f"cannot read input: {exc}")

    print(result)  # noqa: T201


def _run(container, args) -> str:  # noqa: ANN001
    command = args.command
    if command == "activate":
        outcome = container.admission.activate(_read_json(args.event))
        return outcome.value
    if command == "scan":
        started = container.scanner.process_notification(_read_json(args.notification))
        return f"scans started: {started}"
    if command == "consume":
        batch_type = container.dispatcher.handle(_read_input(args.message))
        return batch_type.value if batch_type is not None else "dropped"

    action = container.rotation.handle(_read_json(args.request))
    return action.value if action is not None else "dropped"
