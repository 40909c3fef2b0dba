"""Device-initiated certificate rotation.

Devices drive rotation with two actions, each answered on a
device-specific success or failure topic:

``get``
    Issue a new certificate.  With a CSR the certificate is bound to
    the device's own key; ``rotation.csr_mode`` selects who signs it:

    - ``authority``: the certificate authority signs the CSR;
    - ``local``: the local CSR signer signs it and the result is
      registered with the authority;
    - ``provisioning``: a provisioning template creates the certificate
      (and attaches it) from the CSR.

    Without a CSR the authority generates key and certificate, and the
    private key travels back in the response.  Outside provisioning
    mode the new certificate is attached to the device and receives
    either the configured rotation policy or a copy of the policies of
    the certificate the device presents.

``ack``
    The device confirms it switched over.  The registry gate records
    success, and the certificate named by ``previousCertificateId`` is
    detached.  Once no device holds it any more it is deactivated (and
    deleted when ``rotation.delete_previous_certificate`` is set).  The
    certificate the device is presenting is never retired.

Unknown devices get a failure response instead of an exception.
Malformed requests are logged and dropped without a response.
Collaborator failures are answered on the failure topic and then
re-raised for the host's retry policy.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from fleetcert.ca.base import CAError, IssuedCertificate
from fleetcert.ca.cert_utils import load_csr
from fleetcert.core.errors import CollaboratorError, RequestValidationError
from fleetcert.core.types import CertificateStatus, CsrMode, RotationAction
from fleetcert.logging import invocation_context, security_events
from fleetcert.logging.sanitize import sanitize_for_logs
from fleetcert.models.rotation import RotationAck, RotationGet, parse_rotation_request

if TYPE_CHECKING:
    from fleetcert.ca.base import CertificateAuthority
    from fleetcert.ca.internal import LocalCsrSigner
    from fleetcert.clients.provisioning import ProvisioningService
    from fleetcert.clients.publisher import Publisher
    from fleetcert.config.settings import RotationSettings
    from fleetcert.metrics.collector import MetricsCollector
    from fleetcert.whitelist.base import RegistryGate

log = logging.getLogger(__name__)

NOT_WHITELISTED = "DEVICE_NOT_WHITELISTED"
INVALID_CSR = "INVALID_CSR"


class DeviceRotationHandler:
    def __init__(  # noqa: PLR0913
        self,
        *,
        authority: CertificateAuthority,
        gate: RegistryGate,
        publisher: Publisher,
        settings: RotationSettings,
        signer: LocalCsrSigner | None = None,
        provisioning: ProvisioningService | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._authority = authority
        self._gate = gate
        self._publisher = publisher
        self._settings = settings
        self._signer = signer
        self._provisioning = provisioning
        self._metrics = metrics

    def handle(self, payload: object) -> RotationAction | None:
        """Validate one device action and run it.

        Returns the action that was run, or ``None`` when the payload
        was malformed and dropped.
        """
        try:
            request = parse_rotation_request(payload)
        except RequestValidationError as exc:
            log.warning(
                "Dropping malformed device action: %s (payload=%s)",
                exc,
                sanitize_for_logs(payload) if isinstance(payload, dict) else payload,
            )
            self._count("dropped")
            return None

        with invocation_context(device_id=request.device_id, certificate_id=request.cert_id):
            if isinstance(request, RotationGet):
                self.get(request)
            else:
                self.ack(request)
        return request.action

    # -- get -----------------------------------------------------------------

    def get(self, request: RotationGet) -> None:
        device_id = request.device_id
        topics = self._settings.topics

        if not self._gate.is_whitelisted(device_id):
            security_events.device_not_whitelisted(device_id, request.cert_id, "get")
            self._publish(topics.get_failure, device_id, {"message": NOT_WHITELISTED})
            self._count("get_rejected")
            return

        if request.csr is not None:
            try:
                load_csr(request.csr)
            except CAError as exc:
                log.warning("Device %s sent an unusable CSR: %s", device_id, exc)
                self._publish(topics.get_failure, device_id, {"message": INVALID_CSR})
                self._count("get_rejected")
                return

        if request.previous_certificate_id:
            log.info(
                "Device %s is rotating away from %s",
                device_id,
                request.previous_certificate_id,
            )

        try:
            issued = self._issue(request)
            if self._settings.csr_mode != CsrMode.PROVISIONING or request.csr is None:
                self._bind_to_device(issued, request)
        except Exception as exc:
            log.exception("Certificate issuance for device %s failed", device_id)
            self._publish(topics.get_failure, device_id, {"message": str(exc)})
            self._count("get_failed")
            raise

        response: dict[str, Any] = {
            "certificateId": issued.certificate_id,
            "certificate": issued.certificate_pem,
        }
        if issued.private_key_pem is not None:
            response["privateKey"] = issued.private_key_pem
        self._publish(topics.get_success, device_id, response)
        security_events.rotation_certificate_issued(
            device_id,
            issued.certificate_id,
            csr=request.csr is not None,
        )
        self._count("get_succeeded")

    def _issue(self, request: RotationGet) -> IssuedCertificate:
        if request.csr is None:
            return self._authority.issue_certificate(set_active=True)

        mode = self._settings.csr_mode
        if mode == CsrMode.LOCAL:
            if self._signer is None:
                msg = "rotation.csr_mode 'local' requires a local CSR signer"
                raise CAError(msg)
            certificate_pem = self._signer.sign(request.csr)
            return self._authority.register_certificate(
                certificate_pem,
                ca_certificate_pem=self._signer.ca_certificate_pem,
                set_active=True,
            )
        if mode == CsrMode.PROVISIONING:
            return self._provision_from_csr(request)
        return self._authority.sign_csr(request.csr, set_active=True)

    def _provision_from_csr(self, request: RotationGet) -> IssuedCertificate:
        if self._provisioning is None or not self._settings.provisioning_template:
            msg = "rotation.csr_mode 'provisioning' requires a provisioning template"
            raise CollaboratorError(msg)
        result = self._provisioning.provision_thing(
            self._settings.provisioning_template,
            {"ThingName": request.device_id},
            csr=request.csr,
        )
        if not result.certificate_id or not result.certificate_pem:
            msg = "Provisioning response carried no certificate"
            raise CollaboratorError(msg)
        return IssuedCertificate(
            certificate_id=result.certificate_id,
            certificate_arn=result.certificate_arn or "",
            certificate_pem=result.certificate_pem,
        )

    def _bind_to_device(self, issued: IssuedCertificate, request: RotationGet) -> None:
        self._authority.attach_to_device(issued.certificate_arn, request.device_id)

        policy = self._settings.rotated_certificate_policy
        if policy:
            self._authority.attach_policy(issued.certificate_arn, policy)
            return

        presented = self._authority.describe_certificate(request.cert_id)
        for name in self._authority.list_attached_policies(presented.certificate_arn):
            self._authority.attach_policy(issued.certificate_arn, name)
            log.debug("Copied policy %s from %s", name, request.cert_id)

    # -- ack -----------------------------------------------------------------

    def ack(self, request: RotationAck) -> None:
        device_id = request.device_id
        topics = self._settings.topics

        if not self._gate.is_whitelisted(device_id):
            security_events.device_not_whitelisted(device_id, request.cert_id, "ack")
            self._publish(topics.ack_failure, device_id, {"message": NOT_WHITELISTED})
            self._count("ack_rejected")
            return

        previous = request.previous_certificate_id
        try:
            self._gate.update_asset_status(device_id)
            if previous and previous == request.cert_id:
                log.warning(
                    "Device %s named its current certificate %s as previous; not retiring it",
                    device_id,
                    previous,
                )
            elif previous:
                self._retire(device_id, previous)
        except Exception as exc:
            log.exception("Rotation ack for device %s failed", device_id)
            self._publish(topics.ack_failure, device_id, {"message": str(exc)})
            self._count("ack_failed")
            raise

        self._publish(topics.ack_success, device_id, {"message": "OK"})
        self._count("ack_succeeded")

    def _retire(self, device_id: str, certificate_id: str) -> None:
        description = self._authority.describe_certificate(certificate_id)
        arn = description.certificate_arn
        self._authority.detach_from_device(arn, device_id)

        # Fleet certificates may be shared; only the last holder retires one.
        remaining = self._authority.list_devices_for_certificate(arn)
        if remaining.items:
            log.info(
                "Detached certificate %s from %s; still attached to %s, leaving it active",
                certificate_id,
                device_id,
                ", ".join(remaining.items),
            )
            return

        self._authority.update_certificate_status(certificate_id, CertificateStatus.INACTIVE)

        delete = self._settings.delete_previous_certificate
        if delete:
            for name in self._authority.list_attached_policies(arn):
                self._authority.detach_policy(arn, name)
            self._authority.delete_certificate(certificate_id)

        log.info("Retired certificate %s of device %s (deleted=%s)", certificate_id, device_id, delete)
        security_events.previous_certificate_retired(device_id, certificate_id, deleted=delete)

    # -- helpers -------------------------------------------------------------

    def _publish(self, template: str, device_id: str, payload: dict[str, Any]) -> None:
        topic = template.replace("{deviceId}", device_id)
        self._publisher.publish(topic, payload)
        log.debug("Published to %s (keys=%s)", topic, sorted(payload))

    def _count(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.increment("rotations_total", labels={"outcome": outcome})
