"""Registry gate interface.

A gate answers whether a device identity is known (whitelisted) and
records the successful completion of a certificate rotation on the
device's registry entry.
"""

from __future__ import annotations

import abc


class RegistryGate(abc.ABC):
    @abc.abstractmethod
    def is_whitelisted(self, device_id: str) -> bool:
        """Return True if *device_id* is a known device identity."""

    @abc.abstractmethod
    def update_asset_status(self, device_id: str) -> None:
        """Mark the device's registry entry with the configured success status."""
