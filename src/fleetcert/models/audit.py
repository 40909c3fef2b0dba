"""Scheduled audit notification that triggers a fleet renewal scan.

Wire format::

    {
        "taskId": "task-123",
        "nonCompliantChecksCount": 1,
        "auditDetails": [
            {"checkName": "DEVICE_CERTIFICATE_EXPIRING_CHECK",
             "nonCompliantResourcesCount": 42}
        ]
    }
"""

from __future__ import annotations

from dataclasses import dataclass, field

from fleetcert.core.errors import RequestValidationError
from fleetcert.models._fields import require_str


@dataclass(frozen=True)
class AuditCheckDetail:
    check_name: str
    non_compliant_resources_count: int = 0


@dataclass(frozen=True)
class AuditNotification:
    task_id: str
    non_compliant_checks_count: int
    audit_details: tuple[AuditCheckDetail, ...] = field(default_factory=tuple)

    def expiring_checks(self, check_name: str) -> list[AuditCheckDetail]:
        """Return the non-compliant details for *check_name*."""
        if self.non_compliant_checks_count <= 0:
            return []
        return [
            d
            for d in self.audit_details
            if d.check_name == check_name and d.non_compliant_resources_count > 0
        ]

    @classmethod
    def from_payload(cls, payload: object) -> AuditNotification:
        if not isinstance(payload, dict):
            raise RequestValidationError(["audit notification must be a JSON object"])
        errors: list[str] = []
        task_id = require_str(payload, "taskId", errors)

        try:
            checks_count = int(payload.get("nonCompliantChecksCount") or 0)
        except (TypeError, ValueError, OverflowError):
            errors.append("'nonCompliantChecksCount' must be numeric")
            checks_count = 0

        raw_details = payload.get("auditDetails") or []
        if not isinstance(raw_details, list):
            errors.append("'auditDetails' must be a list")
            raw_details = []

        details = []
        for idx, item in enumerate(raw_details):
            if not isinstance(item, dict) or not isinstance(item.get("checkName"), str):
                errors.append(f"auditDetails[{idx}] must be an object with a 'checkName'")
                continue
            try:
                count = int(item.get("nonCompliantResourcesCount") or 0)
            except (TypeError, ValueError, OverflowError):
                errors.append(f"auditDetails[{idx}].nonCompliantResourcesCount must be numeric")
                continue
            details.append(AuditCheckDetail(item["checkName"], count))

        if errors:
            raise RequestValidationError(errors)
        return cls(
            task_id=task_id,
            non_compliant_checks_count=checks_count,
            audit_details=tuple(details),
        )
