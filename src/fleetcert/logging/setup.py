"""Structured logging configuration for fleetcert.

Provides JSON and text formatters, an invocation-context filter that
injects the current unit of work's identifiers into every log record,
and a one-call ``configure_logging`` function driven by config settings.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import sys
import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from fleetcert.config.settings import LoggingSettings

# Attributes that are part of the standard LogRecord; everything
# else is considered "extra" and gets included in structured output.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
        # Our own well-known context attributes (handled explicitly):
        "invocation_id",
        "device_id",
        "certificate_id",
    }
)

_CONTEXT: contextvars.ContextVar[dict[str, str] | None] = contextvars.ContextVar(
    "fleetcert_invocation_context",
    default=None,
)


@contextlib.contextmanager
def invocation_context(
    *,
    invocation_id: str | None = None,
    device_id: str | None = None,
    certificate_id: str | None = None,
) -> Iterator[dict[str, str]]:
    """Bind identifiers of the current unit of work to every log record.

    Nested contexts inherit the enclosing values and may override them.
    A fresh ``invocation_id`` is generated when neither the caller nor
    an enclosing context supplies one.
    """
    parent = _CONTEXT.get() or {}
    ctx = dict(parent)
    ctx.setdefault("invocation_id", uuid.uuid4().hex)
    if invocation_id is not None:
        ctx["invocation_id"] = invocation_id
    if device_id is not None:
        ctx["device_id"] = device_id
    if certificate_id is not None:
        ctx["certificate_id"] = certificate_id
    token = _CONTEXT.set(ctx)
    try:
        yield ctx
    finally:
        _CONTEXT.reset(token)


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter for production logging.

    Every record becomes a single JSON object on one line containing
    the standard fields plus any *extra* attributes passed by the
    caller or injected by filters.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=UTC,
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        for attr in ("invocation_id", "device_id", "certificate_id"):
            value = getattr(record, attr, None)
            if value is not None and value != "-":
                data[attr] = value

        # Caller-supplied extra fields
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for development / console use."""

    _FMT = "%(asctime)s %(levelname)-8s [%(invocation_id)s] %(device_id)s %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class InvocationContextFilter(logging.Filter):
    """Inject the bound invocation context into every log record.

    Adds ``invocation_id``, ``device_id`` and ``certificate_id`` from
    :func:`invocation_context`, otherwise falls back to ``"-"``.
    """

    CONTEXT_ATTRS = ("invocation_id", "device_id", "certificate_id")

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        ctx = _CONTEXT.get() or {}
        for attr in self.CONTEXT_ATTRS:
            if not hasattr(record, attr):
                setattr(record, attr, ctx.get(attr, "-"))
        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``fleetcert`` logger hierarchy from settings.

    Replaces any bootstrap handlers with properly formatted output.
    Sets up an optional audit logger if ``settings.audit.enabled``.

    Returns the root ``fleetcert`` logger.
    """
    level = getattr(logging, settings.level.upper(), logging.INFO)

    root = logging.getLogger("fleetcert")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    ctx_filter = InvocationContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(ctx_filter)
    root.addHandler(console)

    # ── Audit logger ────────────────────────────────────────────────
    if settings.audit.enabled:
        audit = logging.getLogger("fleetcert.audit")
        audit.setLevel(logging.INFO)

        if settings.audit.file:
            try:
                from logging.handlers import RotatingFileHandler

                fh = RotatingFileHandler(
                    settings.audit.file,
                    maxBytes=settings.audit.max_file_size_bytes,
                    backupCount=settings.audit.backup_count,
                )
                # Audit logs are always structured JSON
                fh.setFormatter(StructuredFormatter())
                fh.addFilter(ctx_filter)
                audit.addHandler(fh)
            except OSError as exc:
                root.warning(
                    "Could not open audit log file %s: %s",
                    settings.audit.file,
                    exc,
                )

    # ── Quieten noisy third-party loggers ───────────────────────────
    for lib in ("urllib3", "psycopg", "psycopg.pool"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return root
