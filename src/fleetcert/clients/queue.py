"""Durable queue client (at-least-once, unordered).

API contract::

    POST /messages  body: {"queueUrl": "...", "messageBody": "..."}
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fleetcert.clients.http import JsonHttpClient


class MessageQueue(abc.ABC):
    @abc.abstractmethod
    def send(self, queue_url: str, body: str) -> None:
        """Enqueue *body* on *queue_url*."""


class HttpMessageQueue(MessageQueue):
    def __init__(self, http: JsonHttpClient) -> None:
        self._http = http

    def send(self, queue_url: str, body: str) -> None:
        self._http.request_json("POST", "/messages", {"queueUrl": queue_url, "messageBody": body})
