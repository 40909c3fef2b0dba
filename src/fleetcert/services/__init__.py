"""Lifecycle services: admission, renewal fan-out, renewal, rotation."""

from fleetcert.services.activation import AdmissionValidator
from fleetcert.services.dispatcher import QueueDispatcher
from fleetcert.services.processor import RenewalProcessor, RenewalReport
from fleetcert.services.revocation import RevocationStoreReader
from fleetcert.services.rotation import DeviceRotationHandler
from fleetcert.services.scanner import FleetRenewalScanner

__all__ = [
    "AdmissionValidator",
    "DeviceRotationHandler",
    "FleetRenewalScanner",
    "QueueDispatcher",
    "RenewalProcessor",
    "RenewalReport",
    "RevocationStoreReader",
]
