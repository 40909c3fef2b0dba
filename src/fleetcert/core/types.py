"""Enumerated types shared across the fleetcert subsystems.

String enums inherit from :class:`enum.StrEnum` so their ``.value`` is
the exact wire string used by the collaborators and on the queue.
:class:`RevocationReason` inherits from :class:`enum.IntEnum` per
RFC 5280 §5.3.1 integer codes.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum

# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


class CertificateStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    REVOKED = "REVOKED"
    PENDING_ACTIVATION = "PENDING_ACTIVATION"


class RevocationReason(IntEnum):
    UNSPECIFIED = 0
    KEY_COMPROMISE = 1
    CA_COMPROMISE = 2
    AFFILIATION_CHANGED = 3
    SUPERSEDED = 4
    CESSATION_OF_OPERATION = 5
    CERTIFICATE_HOLD = 6
    # 7 is unused
    REMOVE_FROM_CRL = 8
    PRIVILEGE_WITHDRAWN = 9
    AA_COMPROMISE = 10


# ---------------------------------------------------------------------------
# Renewal fan-out
# ---------------------------------------------------------------------------


class BatchType(StrEnum):
    """Discriminator carried in every renewal queue message."""

    CONTINUE_AUDIT_PAGE = "continue-audit-page"
    EXPIRING_CERTIFICATE_BATCH = "expiring-certificate-batch"
    CONTINUE_DEVICE_PAGE = "continue-device-page"
    READY_FOR_PROCESSING = "ready-for-processing"


class RenewalOutcome(StrEnum):
    RENEWED = "renewed"
    SKIPPED_INACTIVE = "skipped_inactive"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# Admission
# ---------------------------------------------------------------------------


class ActivationOutcome(StrEnum):
    ACTIVATED = "activated"
    REVOKED = "revoked"
    NOT_WHITELISTED = "not_whitelisted"


# ---------------------------------------------------------------------------
# Device rotation
# ---------------------------------------------------------------------------


class RotationAction(StrEnum):
    GET = "get"
    ACK = "ack"


class CsrMode(StrEnum):
    AUTHORITY = "authority"
    LOCAL = "local"
    PROVISIONING = "provisioning"


# ---------------------------------------------------------------------------
# Registry gate
# ---------------------------------------------------------------------------


class RegistryMode(StrEnum):
    MANAGED = "managed"
    IDENTITY = "identity"
    ALLOW_ALL = "allow_all"
