"""Registry gate factory.

Selects one of the three gate strategies from ``registry.mode``::

    managed    -> ManagedRegistryGate   (managed device registry)
    identity   -> IdentityRegistryGate  (external device-identity registry)
    allow_all  -> AllowAllGate
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetcert.core.types import RegistryMode
from fleetcert.whitelist.allow_all import AllowAllGate
from fleetcert.whitelist.identity import IdentityRegistryGate
from fleetcert.whitelist.managed import ManagedRegistryGate

if TYPE_CHECKING:
    from fleetcert.clients.device_registry import DeviceRegistry
    from fleetcert.clients.identity_registry import IdentityRegistry
    from fleetcert.config.settings import RegistrySettings
    from fleetcert.whitelist.base import RegistryGate

log = logging.getLogger(__name__)


def load_registry_gate(
    settings: RegistrySettings,
    *,
    devices: DeviceRegistry | None = None,
    identities: IdentityRegistry | None = None,
) -> RegistryGate:
    """Build the gate selected by *settings.mode*.

    Raises
    ------
    ValueError
        If the mode is unknown or its backing client was not supplied.

    """
    try:
        mode = RegistryMode(settings.mode)
    except ValueError:
        msg = (
            f"Unknown registry mode '{settings.mode}'; "
            f"expected one of {sorted(m.value for m in RegistryMode)}"
        )
        raise ValueError(msg) from None

    gate: RegistryGate
    if mode == RegistryMode.MANAGED:
        if devices is None:
            msg = "registry mode 'managed' requires a device registry client"
            raise ValueError(msg)
        gate = ManagedRegistryGate(devices, settings)
    elif mode == RegistryMode.IDENTITY:
        if identities is None:
            msg = "registry mode 'identity' requires an identity registry client"
            raise ValueError(msg)
        gate = IdentityRegistryGate(identities, settings)
    else:
        gate = AllowAllGate()

    log.info("Registry gate: %s", mode.value)
    return gate
