"""Renewal ledger entry."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True)
class CertificateRenewalRecord:
    expiring_certificate_arn: str
    thing_name: str
    renewed_certificate_arn: str
    renewed_certificate_id: str
    renewed_certificate_pem: str
    created_at: datetime | None = None
