"""Per-invocation lifecycle counters.

One :class:`MetricsCollector` lives in the :class:`~fleetcert.app.context.Container`
and is shared by every service.  Services count outcomes by name and
label set; the CLI can dump the result in Prometheus text format once the
unit of work has finished (``fleetcert --metrics ...``).
"""

from __future__ import annotations

import threading
import time

PREFIX = "fleetcert_"

# Help text for the counters the services emit.  Unknown names are still
# exported, just without a HELP line.
_HELP = {
    "fleetcert_admissions_total": "Registration events by admission outcome",
    "fleetcert_renewal_messages_sent_total": "Renewal fan-out messages enqueued by batch type",
    "fleetcert_renewals_total": "Ready-batch items by renewal outcome",
    "fleetcert_rotations_total": "Device rotation actions by outcome",
}


class MetricsCollector:
    """Thread-safe counters keyed by metric name and sorted labels."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[tuple[str, tuple[tuple[str, str], ...]], int] = {}
        self._started = time.monotonic()

    def increment(self, name: str, amount: int = 1, labels: dict | None = None) -> None:
        key = self._key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def get(self, name: str, labels: dict | None = None) -> int:
        key = self._key(name, labels)
        with self._lock:
            return self._counters.get(key, 0)

    def snapshot(self) -> dict[str, int]:
        """Return every counter as ``{"name{labels}": value}``."""
        with self._lock:
            items = sorted(self._counters.items())
        return {_render(name, labels): value for (name, labels), value in items}

    def export(self) -> str:
        """Render all counters plus the invocation duration as Prometheus text."""
        lines = [
            f"# HELP {PREFIX}invocation_seconds Wall time since the container was built",
            f"# TYPE {PREFIX}invocation_seconds gauge",
            f"{PREFIX}invocation_seconds {time.monotonic() - self._started:.3f}",
        ]

        with self._lock:
            items = sorted(self._counters.items())

        current = None
        for (name, labels), value in items:
            if name != current:
                current = name
                lines.append("")
                if name in _HELP:
                    lines.append(f"# HELP {name} {_HELP[name]}")
                lines.append(f"# TYPE {name} counter")
            lines.append(f"{_render(name, labels)} {value}")

        return "\n".join(lines) + "\n"

    @staticmethod
    def _key(name: str, labels: dict | None) -> tuple[str, tuple[tuple[str, str], ...]]:
        if not name.startswith(PREFIX):
            name = PREFIX + name
        return name, tuple(sorted((k, str(v)) for k, v in (labels or {}).items()))


def _render(name: str, labels: tuple[tuple[str, str], ...]) -> str:
    if not labels:
        return name
    body = ",".join(f'{k}="{v}"' for k, v in labels)
    return f"{name}{{{body}}}"
