"""Device rotation requests.

A device action payload is validated once at the boundary and turned
into one of two request types, selected by ``action``::

    {"action": "get", "deviceId": "dev-1", "certId": "c1", "csr": "-----BEGIN ..."}
    {"action": "ack", "deviceId": "dev-1", "certId": "c2", "previousCertificateId": "c1"}

``certId`` is always the certificate the device is presenting on the
current connection.
"""

from __future__ import annotations

from dataclasses import dataclass

from fleetcert.core.errors import RequestValidationError
from fleetcert.core.types import RotationAction
from fleetcert.models._fields import optional_str, require_str


@dataclass(frozen=True)
class RotationGet:
    action = RotationAction.GET

    device_id: str
    cert_id: str
    csr: str | None = None
    previous_certificate_id: str | None = None


@dataclass(frozen=True)
class RotationAck:
    action = RotationAction.ACK

    device_id: str
    cert_id: str
    previous_certificate_id: str | None = None


RotationRequest = RotationGet | RotationAck


def parse_rotation_request(payload: object) -> RotationRequest:
    """Validate a device action payload.

    Raises
    ------
    RequestValidationError
        If ``action`` is unknown or a required field is missing.

    """
    if not isinstance(payload, dict):
        raise RequestValidationError(["device action must be a JSON object"])

    raw_action = payload.get("action")
    try:
        action = RotationAction(raw_action)
    except ValueError:
        raise RequestValidationError([f"unknown action {raw_action!r}"]) from None

    errors: list[str] = []
    device_id = require_str(payload, "deviceId", errors)
    cert_id = require_str(payload, "certId", errors)
    previous = optional_str(payload, "previousCertificateId", errors)

    request: RotationRequest
    if action == RotationAction.GET:
        request = RotationGet(
            device_id=device_id,
            cert_id=cert_id,
            csr=optional_str(payload, "csr", errors),
            previous_certificate_id=previous,
        )
    else:
        request = RotationAck(
            device_id=device_id,
            cert_id=cert_id,
            previous_certificate_id=previous,
        )

    if errors:
        raise RequestValidationError(errors)
    return request
