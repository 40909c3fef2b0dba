"""Managed device registry client.

The registry owns device records and the authorization policies a
device inherits through its group hierarchy.

API contract::

    GET   /devices/{deviceId}                          -> DeviceRecord JSON, 404 if absent
    PATCH /devices/{deviceId}                          body: partial device
    GET   /devices/{deviceId}/policies/inherited?type= -> {"results": [PolicyDocument]}
"""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING, Any

from fleetcert.models.device import DeviceRecord, PolicyDocument

if TYPE_CHECKING:
    from fleetcert.clients.http import JsonHttpClient

log = logging.getLogger(__name__)


class DeviceRegistry(abc.ABC):
    @abc.abstractmethod
    def get_device(self, device_id: str) -> DeviceRecord | None:
        """Return the device record, or ``None`` if the device is unknown."""

    @abc.abstractmethod
    def update_device(self, device_id: str, patch: dict[str, Any]) -> None:
        """Apply a partial update to a device record."""

    @abc.abstractmethod
    def list_inherited_policies(self, device_id: str, policy_type: str) -> list[PolicyDocument]:
        """Return the policies of *policy_type* the device inherits, in registry order."""


class HttpDeviceRegistry(DeviceRegistry):
    def __init__(self, http: JsonHttpClient) -> None:
        self._http = http

    def get_device(self, device_id: str) -> DeviceRecord | None:
        data = self._http.request_json(
            "GET",
            f"/devices/{self._http.quote(device_id)}",
            allow_not_found=True,
        )
        if data is None:
            return None
        if not data.get("deviceId"):
            data = {**data, "deviceId": device_id}
        return DeviceRecord.from_payload(data)

    def update_device(self, device_id: str, patch: dict[str, Any]) -> None:
        self._http.request_json("PATCH", f"/devices/{self._http.quote(device_id)}", patch)
        log.debug("Updated device %s (fields=%s)", device_id, sorted(patch))

    def list_inherited_policies(self, device_id: str, policy_type: str) -> list[PolicyDocument]:
        data = self._http.request_json(
            "GET",
            f"/devices/{self._http.quote(device_id)}/policies/inherited",
            query={"type": policy_type},
            allow_not_found=True,
        )
        if not data:
            return []
        return [PolicyDocument.from_payload(p) for p in data.get("results") or []]
