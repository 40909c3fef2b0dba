"""Certificate registration event (one per admission check)."""

from __future__ import annotations

from dataclasses import dataclass

from fleetcert.core.errors import RequestValidationError
from fleetcert.models._fields import require_int, require_str


@dataclass(frozen=True)
class RegistrationEvent:
    certificate_id: str
    ca_certificate_id: str
    timestamp: int
    # Advisory only; never re-validated.
    owner_account_id: str

    @classmethod
    def from_payload(cls, payload: object) -> RegistrationEvent:
        """Validate an inbound registration payload.

        Raises
        ------
        RequestValidationError
            If the payload is not an object or any required field is
            missing or mistyped.

        """
        if not isinstance(payload, dict):
            raise RequestValidationError(["registration event must be a JSON object"])
        errors: list[str] = []
        event = cls(
            certificate_id=require_str(payload, "certificateId", errors),
            ca_certificate_id=require_str(payload, "caCertificateId", errors),
            timestamp=require_int(payload, "timestamp", errors),
            owner_account_id=require_str(payload, "awsAccountId", errors),
        )
        if errors:
            raise RequestValidationError(errors)
        return event
