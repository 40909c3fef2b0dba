"""Gate that treats every device identity as known."""

from __future__ import annotations

from fleetcert.whitelist.base import RegistryGate


class AllowAllGate(RegistryGate):
    def is_whitelisted(self, device_id: str) -> bool:  # noqa: ARG002
        return True

    def update_asset_status(self, device_id: str) -> None:
        pass
