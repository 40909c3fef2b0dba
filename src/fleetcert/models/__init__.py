"""Domain entities and boundary payload types for fleetcert."""

from fleetcert.models.audit import AuditCheckDetail, AuditNotification
from fleetcert.models.device import DeviceRecord, PolicyDocument
from fleetcert.models.messages import (
    AuditPageMessage,
    DevicePageMessage,
    ExpiringCertificateBatch,
    ReadyBatch,
    RenewalItem,
    RenewalMessage,
    encode_message,
    parse_message,
)
from fleetcert.models.page import Page
from fleetcert.models.registration import RegistrationEvent
from fleetcert.models.renewal import CertificateRenewalRecord
from fleetcert.models.revocation import RevocationList, RevokedCertificate
from fleetcert.models.rotation import (
    RotationAck,
    RotationGet,
    RotationRequest,
    parse_rotation_request,
)

__all__ = [
    "AuditCheckDetail",
    "AuditNotification",
    "AuditPageMessage",
    "CertificateRenewalRecord",
    "DevicePageMessage",
    "DeviceRecord",
    "ExpiringCertificateBatch",
    "Page",
    "PolicyDocument",
    "ReadyBatch",
    "RegistrationEvent",
    "RenewalItem",
    "RenewalMessage",
    "RevocationList",
    "RevokedCertificate",
    "RotationAck",
    "RotationGet",
    "RotationRequest",
    "encode_message",
    "parse_message",
    "parse_rotation_request",
]
