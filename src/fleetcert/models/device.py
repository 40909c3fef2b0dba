"""Device registry views."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DeviceRecord:
    device_id: str
    state: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.state == "active"

    @classmethod
    def from_payload(cls, payload: dict) -> DeviceRecord:
        return cls(
            device_id=payload.get("deviceId", ""),
            state=payload.get("state"),
            attributes=dict(payload.get("attributes") or {}),
        )


@dataclass(frozen=True)
class PolicyDocument:
    """An inherited authorization policy.

    ``document`` is the raw JSON text stored in the registry; the
    provisioning template id is read from its ``template`` field.
    """

    policy_id: str
    policy_type: str
    document: str

    @property
    def template_id(self) -> str | None:
        try:
            parsed = json.loads(self.document)
        except (TypeError, ValueError):
            return None
        if not isinstance(parsed, dict):
            return None
        template = parsed.get("template")
        return template if isinstance(template, str) and template else None

    @classmethod
    def from_payload(cls, payload: dict) -> PolicyDocument:
        document = payload.get("document", "")
        if not isinstance(document, str):
            document = json.dumps(document)
        return cls(
            policy_id=payload.get("policyId", ""),
            policy_type=payload.get("type", ""),
            document=document,
        )
