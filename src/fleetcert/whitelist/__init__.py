"""Device whitelist (registry gate) strategies."""

from fleetcert.whitelist.base import RegistryGate
from fleetcert.whitelist.registry import load_registry_gate

__all__ = ["RegistryGate", "load_registry_gate"]
