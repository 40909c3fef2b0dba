"""Structured security event logger.

Emits standardized security events for SIEM integration.
All events are logged to the ``fleetcert.security`` logger with
a consistent ``event_id`` field for filtering and alerting.

Sensitive material (PEM bodies, private keys, CSR data) is
automatically redacted via :func:`~fleetcert.logging.sanitize.sanitize_for_logs`
before emission.
"""

from __future__ import annotations

import logging
from typing import Any

from fleetcert.logging.sanitize import sanitize_for_logs

security_log = logging.getLogger("fleetcert.security")


def _emit(
    event_id: str,
    message: str,
    *args: Any,  # noqa: ANN401
    severity: str = "INFO",
    **extra: Any,  # noqa: ANN401
) -> None:
    """Emit a structured security event.

    All *extra* keyword arguments are sanitized to redact
    cryptographic material before logging.
    """
    data: dict[str, object] = {
        "event_id": event_id,
        "severity": severity,
    }
    data.update(sanitize_for_logs(extra))
    level = getattr(logging, severity.upper(), logging.INFO)
    security_log.log(level, message, *args, extra=data)


def certificate_revoked_at_admission(certificate_id: str, reason: str) -> None:
    """Log revocation of a freshly registered certificate."""
    _emit(
        "fleetcert.security.certificate_revoked",
        "Certificate revoked at admission: id=%s, reason=%s",
        certificate_id,
        reason,
        revoked_certificate_id=certificate_id,
        reason=reason,
        severity="WARNING",
    )


def device_not_whitelisted(device_id: str, certificate_id: str | None, action: str) -> None:
    """Log a device identity unknown to the registry gate."""
    _emit(
        "fleetcert.security.device_not_whitelisted",
        "Device not whitelisted: device=%s, action=%s",
        device_id,
        action,
        subject_device_id=device_id,
        presented_certificate_id=certificate_id,
        action=action,
        severity="WARNING",
    )


def device_activated(device_id: str, certificate_id: str, identity_arn: str) -> None:
    """Log successful admission of a device certificate."""
    _emit(
        "fleetcert.security.device_activated",
        "Device activated: device=%s, certificate=%s",
        device_id,
        certificate_id,
        identity_arn=identity_arn,
    )


def certificate_renewed(
    thing_name: str,
    expiring_certificate_arn: str,
    renewed_certificate_arn: str,
) -> None:
    """Log issuance of a replacement for an expiring certificate."""
    _emit(
        "fleetcert.security.certificate_renewed",
        "Certificate renewed: thing=%s, expiring=%s, renewed=%s",
        thing_name,
        expiring_certificate_arn,
        renewed_certificate_arn,
    )


def rotation_certificate_issued(device_id: str, certificate_id: str, *, csr: bool) -> None:
    """Log a certificate issued through the device rotation protocol."""
    _emit(
        "fleetcert.security.rotation_certificate_issued",
        "Rotation certificate issued: device=%s, certificate=%s, csr=%s",
        device_id,
        certificate_id,
        csr,
    )


def previous_certificate_retired(
    device_id: str,
    certificate_id: str,
    *,
    deleted: bool,
) -> None:
    """Log deactivation (and optional deletion) of a rotated-out certificate."""
    _emit(
        "fleetcert.security.previous_certificate_retired",
        "Previous certificate retired: device=%s, certificate=%s, deleted=%s",
        device_id,
        certificate_id,
        deleted,
        severity="WARNING",
    )
