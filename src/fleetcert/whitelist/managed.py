"""Gate backed by the managed device registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetcert.whitelist.base import RegistryGate

if TYPE_CHECKING:
    from fleetcert.clients.device_registry import DeviceRegistry
    from fleetcert.config.settings import RegistrySettings

log = logging.getLogger(__name__)


class ManagedRegistryGate(RegistryGate):
    def __init__(self, devices: DeviceRegistry, settings: RegistrySettings) -> None:
        self._devices = devices
        self._settings = settings

    def is_whitelisted(self, device_id: str) -> bool:
        known = self._devices.get_device(device_id) is not None
        log.debug("Managed registry lookup for %s: known=%s", device_id, known)
        return known

    def update_asset_status(self, device_id: str) -> None:
        self._devices.update_device(
            device_id,
            {"attributes": {self._settings.status_key: self._settings.status_value}},
        )
