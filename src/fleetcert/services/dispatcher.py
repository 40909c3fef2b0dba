"""Single entry point for every message on the renewal queue."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetcert.core.errors import BatchProcessingError, RequestValidationError
from fleetcert.core.types import BatchType
from fleetcert.logging import invocation_context
from fleetcert.models.messages import (
    AuditPageMessage,
    DevicePageMessage,
    ExpiringCertificateBatch,
    ReadyBatch,
    parse_message,
)

if TYPE_CHECKING:
    from fleetcert.services.processor import RenewalProcessor
    from fleetcert.services.scanner import FleetRenewalScanner

log = logging.getLogger(__name__)


class QueueDispatcher:
    """Decode a queue body and route it by ``batchType``.

    Scanner hops (audit page, expiring batch, device page) raise on the
    first failure.  A ready batch always runs to the end; when any of
    its items failed, :class:`BatchProcessingError` is raised afterwards
    so the host redelivers the message.
    """

    def __init__(self, scanner: FleetRenewalScanner, processor: RenewalProcessor) -> None:
        self._scanner = scanner
        self._processor = processor

    def handle(self, body: str | bytes | dict) -> BatchType | None:
        """Process one message; returns its type, or ``None`` if dropped."""
        try:
            message = parse_message(body)
        except RequestValidationError as exc:
            log.warning("Dropping malformed queue message: %s (body=%r)", exc, body)
            return None

        with invocation_context():
            log.debug("Dispatching %s message", message.batch_type.value)
            if isinstance(message, AuditPageMessage):
                self._scanner.process_audit_page(
                    message.task_id,
                    message.check_name,
                    message.next_token,
                    message.max_results,
                )
            elif isinstance(message, ExpiringCertificateBatch):
                self._scanner.process_expiring_batch(message)
            elif isinstance(message, DevicePageMessage):
                self._scanner.process_device_page(
                    message.certificate_arn,
                    message.next_token,
                    message.max_results,
                )
            elif isinstance(message, ReadyBatch):
                report = self._processor.process(message)
                if not report.ok:
                    raise BatchProcessingError(
                        [(item.thing_name, item.certificate_arn) for item, _ in report.failed],
                    )
        return message.batch_type
