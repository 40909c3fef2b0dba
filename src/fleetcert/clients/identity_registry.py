"""External device-identity registry client.

API contract::

    GET   /things/{name}             -> {"thingName", "attributes"}, 404 if absent
    PATCH /things/{name}/attributes  body: {"attributes": {...}, "merge": true}
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fleetcert.clients.http import JsonHttpClient


class IdentityRegistry(abc.ABC):
    @abc.abstractmethod
    def describe_identity(self, name: str) -> dict | None:
        """Return the identity document, or ``None`` if it does not exist."""

    @abc.abstractmethod
    def update_identity_attributes(self, name: str, attributes: dict[str, str]) -> None:
        """Merge *attributes* into the identity's attribute map."""


class HttpIdentityRegistry(IdentityRegistry):
    def __init__(self, http: JsonHttpClient) -> None:
        self._http = http

    def describe_identity(self, name: str) -> dict | None:
        return self._http.request_json(
            "GET",
            f"/things/{self._http.quote(name)}",
            allow_not_found=True,
        )

    def update_identity_attributes(self, name: str, attributes: dict[str, str]) -> None:
        self._http.request_json(
            "PATCH",
            f"/things/{self._http.quote(name)}/attributes",
            {"attributes": attributes, "merge": True},
        )
