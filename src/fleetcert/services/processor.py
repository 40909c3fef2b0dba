"""Renewal processor.

Replaces the expiring certificate of every (device, certificate) pair
in a ready batch.  Per pair:

1. skip the pair if the device is not active in the registry;
2. resolve the replacement through the renewal ledger, issuing and
   recording a new certificate only when the ledger has none;
3. archive the replacement PEM under ``YYYY/M/D/{certificateId}.pem``;
4. copy every policy of the expiring certificate to the replacement;
5. attach the replacement to the device.

The ledger write in step 2 happens before any other side effect, so a
redelivered pair always resumes with the same replacement certificate.
Steps 3 to 5 are individually repeatable.

Pairs are isolated from each other: a failure is logged and recorded
in the :class:`RenewalReport` and the loop moves on to the next pair.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from fleetcert.core.errors import CollaboratorError
from fleetcert.core.types import CertificateStatus, RenewalOutcome
from fleetcert.logging import invocation_context, security_events
from fleetcert.models.renewal import CertificateRenewalRecord

if TYPE_CHECKING:
    from collections.abc import Callable

    from fleetcert.ca.base import CertificateAuthority
    from fleetcert.clients.blob_store import BlobStore
    from fleetcert.clients.device_registry import DeviceRegistry
    from fleetcert.config.settings import RenewalSettings
    from fleetcert.metrics.collector import MetricsCollector
    from fleetcert.models.messages import ReadyBatch, RenewalItem
    from fleetcert.repositories.renewal import CertificateRenewalRepository

log = logging.getLogger(__name__)


@dataclass
class RenewalReport:
    """Per-item outcome of one ready batch."""

    renewed: list[RenewalItem] = field(default_factory=list)
    skipped: list[RenewalItem] = field(default_factory=list)
    failed: list[tuple[RenewalItem, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class RenewalProcessor:
    def __init__(  # noqa: PLR0913
        self,
        *,
        authority: CertificateAuthority,
        devices: DeviceRegistry,
        ledger: CertificateRenewalRepository,
        blobs: BlobStore,
        settings: RenewalSettings,
        clock: Callable[[], datetime] | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._authority = authority
        self._devices = devices
        self._ledger = ledger
        self._blobs = blobs
        self._settings = settings
        self._clock = clock or (lambda: datetime.now(UTC))
        self._metrics = metrics

    def process(self, batch: ReadyBatch) -> RenewalReport:
        """Renew every pair in *batch*; never raises for a single pair."""
        report = RenewalReport()
        for item in batch.items:
            with invocation_context(device_id=item.thing_name):
                try:
                    outcome = self._renew_item(item)
                except Exception as exc:
                    log.exception(
                        "Renewal of %s for device %s failed",
                        item.certificate_arn,
                        item.thing_name,
                    )
                    report.failed.append((item, str(exc)))
                    self._count(RenewalOutcome.FAILED)
                    continue

            if outcome == RenewalOutcome.RENEWED:
                report.renewed.append(item)
            else:
                report.skipped.append(item)
            self._count(outcome)

        log.info(
            "Ready batch done: renewed=%d skipped=%d failed=%d",
            len(report.renewed),
            len(report.skipped),
            len(report.failed),
        )
        return report

    # -- per-item pipeline ---------------------------------------------------

    def _renew_item(self, item: RenewalItem) -> RenewalOutcome:
        device = self._devices.get_device(item.thing_name)
        if device is None or not device.is_active:
            log.info(
                "Device %s is not active (state=%s), skipping renewal",
                item.thing_name,
                device.state if device is not None else "absent",
            )
            return RenewalOutcome.SKIPPED_INACTIVE

        record = self._resolve_replacement(item)
        self._archive(record)

        policies = self._authority.list_attached_policies(item.certificate_arn)
        for policy_name in policies:
            self._authority.attach_policy(record.renewed_certificate_arn, policy_name)
            log.info("Attached policy %s to %s", policy_name, record.renewed_certificate_arn)

        self._authority.attach_to_device(record.renewed_certificate_arn, item.thing_name)
        log.info(
            "Attached renewed certificate %s to %s",
            record.renewed_certificate_arn,
            item.thing_name,
        )
        security_events.certificate_renewed(
            item.thing_name,
            item.certificate_arn,
            record.renewed_certificate_arn,
        )
        return RenewalOutcome.RENEWED

    def _resolve_replacement(self, item: RenewalItem) -> CertificateRenewalRecord:
        existing = self._ledger.get_item(item.certificate_arn)
        if existing is not None:
            log.debug(
                "Reusing replacement %s for %s",
                existing.renewed_certificate_arn,
                item.certificate_arn,
            )
            return existing

        issued = self._authority.issue_certificate(set_active=True)
        record = CertificateRenewalRecord(
            expiring_certificate_arn=item.certificate_arn,
            thing_name=item.thing_name,
            renewed_certificate_arn=issued.certificate_arn,
            renewed_certificate_id=issued.certificate_id,
            renewed_certificate_pem=issued.certificate_pem,
        )
        if self._ledger.put_item_if_absent(record):
            log.info("Issued replacement %s for %s", issued.certificate_arn, item.certificate_arn)
            return record

        # A concurrent delivery recorded its replacement first
        winner = self._ledger.get_item(item.certificate_arn)
        if winner is None:
            msg = f"Ledger refused insert for {item.certificate_arn} but holds no record"
            raise CollaboratorError(msg, retryable=True)
        log.warning(
            "Lost ledger race for %s; retiring orphan %s in favour of %s",
            item.certificate_arn,
            issued.certificate_id,
            winner.renewed_certificate_arn,
        )
        self._authority.update_certificate_status(issued.certificate_id, CertificateStatus.INACTIVE)
        self._authority.delete_certificate(issued.certificate_id)
        return winner

    def _archive(self, record: CertificateRenewalRecord) -> None:
        today = self._clock()
        key = f"{today.year}/{today.month}/{today.day}/{record.renewed_certificate_id}.pem"
        self._blobs.put(
            self._settings.certificates_bucket,
            key,
            record.renewed_certificate_pem.encode("ascii"),
        )
        log.debug(
            "Archived %s to %s/%s",
            record.renewed_certificate_id,
            self._settings.certificates_bucket,
            key,
        )

    def _count(self, outcome: RenewalOutcome) -> None:
        if self._metrics is not None:
            self._metrics.increment("renewals_total", labels={"outcome": outcome.value})
