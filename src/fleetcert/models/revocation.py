"""Revocation list snapshot.

Wire format (JSON document in the blob store)::

    {
        "revokedCertificates": [
            {"certificateId": "abc", "revokedOn": 1700000000, "revokedReason": 1}
        ],
        "lastUpdate": 1700000000
    }
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from fleetcert.core.errors import RevocationListError
from fleetcert.core.types import RevocationReason


@dataclass(frozen=True)
class RevokedCertificate:
    certificate_id: str
    revoked_on: int
    revoked_reason: int = RevocationReason.UNSPECIFIED

    @property
    def reason(self) -> RevocationReason:
        try:
            return RevocationReason(self.revoked_reason)
        except ValueError:
            return RevocationReason.UNSPECIFIED


@dataclass(frozen=True)
class RevocationList:
    revoked_certificates: tuple[RevokedCertificate, ...] = field(default_factory=tuple)
    last_update: int = 0

    def find(self, certificate_id: str) -> RevokedCertificate | None:
        for entry in self.revoked_certificates:
            if entry.certificate_id == certificate_id:
                return entry
        return None

    def contains(self, certificate_id: str) -> bool:
        return self.find(certificate_id) is not None

    @classmethod
    def from_json(cls, raw: bytes | str) -> RevocationList:
        """Parse the stored revocation list document.

        Raises
        ------
        RevocationListError
            If the document is not valid JSON or an entry lacks a
            certificate id.

        """
        try:
            doc = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            msg = f"Revocation list is not valid JSON: {exc}"
            raise RevocationListError(msg) from exc
        if not isinstance(doc, dict):
            msg = "Revocation list must be a JSON object"
            raise RevocationListError(msg)

        entries = []
        for idx, item in enumerate(doc.get("revokedCertificates") or []):
            cert_id = item.get("certificateId") if isinstance(item, dict) else None
            if not isinstance(cert_id, str) or not cert_id:
                msg = f"Revocation list entry {idx} has no certificateId"
                raise RevocationListError(msg)
            try:
                entries.append(
                    RevokedCertificate(
                        certificate_id=cert_id,
                        revoked_on=int(item.get("revokedOn") or 0),
                        revoked_reason=int(item.get("revokedReason") or 0),
                    ),
                )
            except (TypeError, ValueError, OverflowError) as exc:
                msg = f"Revocation list entry {idx} has a non-numeric field: {exc}"
                raise RevocationListError(msg) from exc
        try:
            last_update = int(doc.get("lastUpdate") or 0)
        except (TypeError, ValueError, OverflowError) as exc:
            msg = f"Revocation list lastUpdate is not numeric: {exc}"
            raise RevocationListError(msg) from exc
        return cls(revoked_certificates=tuple(entries), last_update=last_update)
