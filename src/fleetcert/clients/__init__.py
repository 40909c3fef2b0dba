"""Clients for the external collaborators fleetcert consumes.

Every collaborator is an abstract interface with one HTTP
implementation built on :class:`~fleetcert.clients.http.JsonHttpClient`.
"""

from fleetcert.clients.audit_feed import AuditFeed, HttpAuditFeed
from fleetcert.clients.blob_store import BlobStore, HttpBlobStore
from fleetcert.clients.device_registry import DeviceRegistry, HttpDeviceRegistry
from fleetcert.clients.http import JsonHttpClient
from fleetcert.clients.identity_registry import HttpIdentityRegistry, IdentityRegistry
from fleetcert.clients.provisioning import (
    HttpProvisioningService,
    ProvisioningService,
    ProvisionResult,
)
from fleetcert.clients.publisher import HttpPublisher, Publisher
from fleetcert.clients.queue import HttpMessageQueue, MessageQueue

__all__ = [
    "AuditFeed",
    "BlobStore",
    "DeviceRegistry",
    "HttpAuditFeed",
    "HttpBlobStore",
    "HttpDeviceRegistry",
    "HttpIdentityRegistry",
    "HttpMessageQueue",
    "HttpProvisioningService",
    "HttpPublisher",
    "IdentityRegistry",
    "JsonHttpClient",
    "MessageQueue",
    "ProvisionResult",
    "ProvisioningService",
    "Publisher",
]
