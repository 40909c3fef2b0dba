"""Fleet renewal scanner.

Turns a scheduled audit notification into a chain of queue messages.
Each invocation handles exactly one page and hands the rest of the
work on through the queue:

- an audit-findings page yields one ``expiring-certificate-batch`` with
  the ARNs of the page's certificates, plus a ``continue-audit-page``
  when the feed reports more results;
- each ARN of an expiring batch starts a device listing whose pages
  yield one ``ready-for-processing`` batch of (device, certificate)
  pairs, plus a ``continue-device-page`` when more devices remain.

A failed hop raises, and the host redelivers the message that carried
it; since every message encodes where to resume, nothing is lost.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetcert.models.audit import AuditNotification
from fleetcert.models.messages import (
    AuditPageMessage,
    DevicePageMessage,
    ExpiringCertificateBatch,
    ReadyBatch,
    RenewalItem,
    encode_message,
)

if TYPE_CHECKING:
    from fleetcert.ca.base import CertificateAuthority
    from fleetcert.clients.audit_feed import AuditFeed
    from fleetcert.clients.queue import MessageQueue
    from fleetcert.config.settings import RenewalSettings
    from fleetcert.metrics.collector import MetricsCollector
    from fleetcert.models.messages import RenewalMessage

log = logging.getLogger(__name__)


class FleetRenewalScanner:
    def __init__(  # noqa: PLR0913
        self,
        *,
        audit_feed: AuditFeed,
        authority: CertificateAuthority,
        queue: MessageQueue,
        settings: RenewalSettings,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._audit_feed = audit_feed
        self._authority = authority
        self._queue = queue
        self._settings = settings
        self._metrics = metrics

    # -- entry points --------------------------------------------------------

    def process_notification(self, payload: dict | AuditNotification) -> int:
        """Start a scan for every expiring-certificate check in *payload*.

        Returns the number of checks for which a scan was started.  A
        notification without non-compliant checks is a no-op.

        Raises
        ------
        RequestValidationError
            If the notification is malformed.

        """
        notification = (
            payload
            if isinstance(payload, AuditNotification)
            else AuditNotification.from_payload(payload)
        )
        checks = notification.expiring_checks(self._settings.check_name)
        if not checks:
            log.info(
                "Audit task %s has no non-compliant %s findings",
                notification.task_id,
                self._settings.check_name,
            )
            return 0

        for check in checks:
            log.info(
                "Audit task %s: %d certificate(s) failing %s",
                notification.task_id,
                check.non_compliant_resources_count,
                check.check_name,
            )
            self.process_audit_page(notification.task_id, check.check_name)
        return len(checks)

    def process_audit_page(
        self,
        task_id: str,
        check_name: str,
        next_token: str | None = None,
        max_results: int | None = None,
    ) -> None:
        """Resolve one page of findings and enqueue the follow-up work."""
        page_size = max_results or self._settings.page_size
        page = self._audit_feed.list_findings(
            check_name,
            task_id,
            max_results=page_size,
            page_token=next_token,
        )

        # One authority lookup per finding; the feed only carries ids
        arns = tuple(
            self._authority.describe_certificate(cert_id).certificate_arn
            for cert_id in page.items
        )
        if arns:
            self._send(ExpiringCertificateBatch(certificate_arns=arns))

        if page.next_token:
            self._send(
                AuditPageMessage(
                    task_id=task_id,
                    check_name=check_name,
                    max_results=page_size,
                    next_token=page.next_token,
                ),
            )
        log.info(
            "Audit task %s page: %d expiring certificate(s), more=%s",
            task_id,
            len(arns),
            page.has_more,
        )

    def process_expiring_batch(self, batch: ExpiringCertificateBatch) -> None:
        """Start the device listing of every certificate in *batch*."""
        for arn in batch.certificate_arns:
            self.process_device_page(arn)

    def process_device_page(
        self,
        certificate_arn: str,
        next_token: str | None = None,
        max_results: int | None = None,
    ) -> None:
        """List one page of devices holding *certificate_arn*."""
        page_size = max_results or self._settings.page_size
        page = self._authority.list_devices_for_certificate(
            certificate_arn,
            page_token=next_token,
            max_results=page_size,
        )

        if page.items:
            self._send(
                ReadyBatch(
                    items=tuple(
                        RenewalItem(thing_name=thing, certificate_arn=certificate_arn)
                        for thing in page.items
                    ),
                ),
            )
        else:
            log.debug("No devices attached to %s on this page", certificate_arn)

        if page.next_token:
            self._send(
                DevicePageMessage(
                    certificate_arn=certificate_arn,
                    max_results=page_size,
                    next_token=page.next_token,
                ),
            )

    # -- internals -----------------------------------------------------------

    def _send(self, message: RenewalMessage) -> None:
        self._queue.send(self._settings.queue_url, encode_message(message))
        log.debug("Enqueued %s message", message.batch_type.value)
        if self._metrics is not None:
            self._metrics.increment(
                "renewal_messages_sent_total",
                labels={"batch_type": message.batch_type.value},
            )
