"""Gate backed by the external device-identity registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetcert.whitelist.base import RegistryGate

if TYPE_CHECKING:
    from fleetcert.clients.identity_registry import IdentityRegistry
    from fleetcert.config.settings import RegistrySettings

log = logging.getLogger(__name__)


class IdentityRegistryGate(RegistryGate):
    def __init__(self, identities: IdentityRegistry, settings: RegistrySettings) -> None:
        self._identities = identities
        self._settings = settings

    def is_whitelisted(self, device_id: str) -> bool:
        known = self._identities.describe_identity(device_id) is not None
        log.debug("Identity registry lookup for %s: known=%s", device_id, known)
        return known

    def update_asset_status(self, device_id: str) -> None:
        self._identities.update_identity_attributes(
            device_id,
            {self._settings.status_key: self._settings.status_value},
        )
