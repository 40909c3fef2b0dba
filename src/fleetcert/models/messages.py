"""Renewal fan-out queue messages.

Every message on the renewal queue is a JSON object whose ``batchType``
field selects one of four variants.  None of them is persisted; each
encodes *where to resume* so that a failed hop is simply redelivered.

================================  ==========================================
``batchType``                     payload
================================  ==========================================
``continue-audit-page``           ``taskId``, ``checkName``, ``maxResults``,
                                  ``nextToken``
``expiring-certificate-batch``    ``certificateArns``
``continue-device-page``          ``certificateArn``, ``maxResults``,
                                  ``nextToken``
``ready-for-processing``          ``items``: ``[{thingName, certificateArn}]``
================================  ==========================================
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import ClassVar

from fleetcert.core.errors import RequestValidationError
from fleetcert.core.types import BatchType
from fleetcert.models._fields import require_int, require_str


@dataclass(frozen=True)
class AuditPageMessage:
    batch_type: ClassVar[BatchType] = BatchType.CONTINUE_AUDIT_PAGE

    task_id: str
    check_name: str
    max_results: int
    next_token: str

    def to_payload(self) -> dict:
        return {
            "taskId": self.task_id,
            "checkName": self.check_name,
            "maxResults": self.max_results,
            "nextToken": self.next_token,
        }

    @classmethod
    def from_payload(cls, payload: dict, errors: list[str]) -> AuditPageMessage:
        return cls(
            task_id=require_str(payload, "taskId", errors),
            check_name=require_str(payload, "checkName", errors),
            max_results=require_int(payload, "maxResults", errors),
            next_token=require_str(payload, "nextToken", errors),
        )


@dataclass(frozen=True)
class ExpiringCertificateBatch:
    batch_type: ClassVar[BatchType] = BatchType.EXPIRING_CERTIFICATE_BATCH

    certificate_arns: tuple[str, ...] = field(default_factory=tuple)

    def to_payload(self) -> dict:
        return {"certificateArns": list(self.certificate_arns)}

    @classmethod
    def from_payload(cls, payload: dict, errors: list[str]) -> ExpiringCertificateBatch:
        arns = payload.get("certificateArns")
        if not isinstance(arns, list) or not all(isinstance(a, str) and a for a in arns):
            errors.append("'certificateArns' must be a list of non-empty strings")
            return cls()
        return cls(certificate_arns=tuple(arns))


@dataclass(frozen=True)
class DevicePageMessage:
    batch_type: ClassVar[BatchType] = BatchType.CONTINUE_DEVICE_PAGE

    certificate_arn: str
    max_results: int
    next_token: str

    def to_payload(self) -> dict:
        return {
            "certificateArn": self.certificate_arn,
            "maxResults": self.max_results,
            "nextToken": self.next_token,
        }

    @classmethod
    def from_payload(cls, payload: dict, errors: list[str]) -> DevicePageMessage:
        return cls(
            certificate_arn=require_str(payload, "certificateArn", errors),
            max_results=require_int(payload, "maxResults", errors),
            next_token=require_str(payload, "nextToken", errors),
        )


@dataclass(frozen=True)
class RenewalItem:
    """One (device, expiring certificate) pair to renew."""

    thing_name: str
    certificate_arn: str


@dataclass(frozen=True)
class ReadyBatch:
    batch_type: ClassVar[BatchType] = BatchType.READY_FOR_PROCESSING

    items: tuple[RenewalItem, ...] = field(default_factory=tuple)

    def to_payload(self) -> dict:
        return {
            "items": [
                {"thingName": i.thing_name, "certificateArn": i.certificate_arn}
                for i in self.items
            ],
        }

    @classmethod
    def from_payload(cls, payload: dict, errors: list[str]) -> ReadyBatch:
        raw_items = payload.get("items")
        if not isinstance(raw_items, list):
            errors.append("'items' must be a list")
            return cls()
        items = []
        for idx, raw in enumerate(raw_items):
            item_errors: list[str] = []
            if not isinstance(raw, dict):
                errors.append(f"items[{idx}] must be an object")
                continue
            item = RenewalItem(
                thing_name=require_str(raw, "thingName", item_errors),
                certificate_arn=require_str(raw, "certificateArn", item_errors),
            )
            errors.extend(f"items[{idx}]: {e}" for e in item_errors)
            items.append(item)
        return cls(items=tuple(items))


RenewalMessage = AuditPageMessage | ExpiringCertificateBatch | DevicePageMessage | ReadyBatch

_VARIANTS: dict[BatchType, type] = {
    BatchType.CONTINUE_AUDIT_PAGE: AuditPageMessage,
    BatchType.EXPIRING_CERTIFICATE_BATCH: ExpiringCertificateBatch,
    BatchType.CONTINUE_DEVICE_PAGE: DevicePageMessage,
    BatchType.READY_FOR_PROCESSING: ReadyBatch,
}


def encode_message(message: RenewalMessage) -> str:
    """Serialise *message* to the JSON body sent on the queue."""
    body = {"batchType": message.batch_type.value}
    body.update(message.to_payload())
    return json.dumps(body, separators=(",", ":"))


def parse_message(body: str | bytes | dict) -> RenewalMessage:
    """Decode a queue body into its message variant.

    Raises
    ------
    RequestValidationError
        If the body is not JSON, carries an unknown ``batchType``, or
        its variant payload is malformed.

    """
    if isinstance(body, dict):
        payload = body
    else:
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise RequestValidationError([f"message body is not valid JSON: {exc}"]) from exc
    if not isinstance(payload, dict):
        raise RequestValidationError(["message body must be a JSON object"])

    raw_type = payload.get("batchType")
    try:
        batch_type = BatchType(raw_type)
    except ValueError:
        raise RequestValidationError([f"unknown batchType {raw_type!r}"]) from None

    errors: list[str] = []
    message = _VARIANTS[batch_type].from_payload(payload, errors)
    if errors:
        raise RequestValidationError(errors)
    return message
