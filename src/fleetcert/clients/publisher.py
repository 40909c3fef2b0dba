"""Device message publisher (QoS 1).

API contract::

    POST /topics/{topic}?qos=1  body: JSON payload
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fleetcert.clients.http import JsonHttpClient


class Publisher(abc.ABC):
    @abc.abstractmethod
    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        """Deliver *payload* on *topic* with at-least-once semantics."""


class HttpPublisher(Publisher):
    def __init__(self, http: JsonHttpClient, qos: int = 1) -> None:
        self._http = http
        self._qos = qos

    def publish(self, topic: str, payload: dict[str, Any]) -> None:
        self._http.request_json(
            "POST",
            f"/topics/{self._http.quote(topic)}",
            payload,
            query={"qos": self._qos},
        )
