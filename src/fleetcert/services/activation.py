"""Admission validator for just-in-time registered device certificates.

Invoked once per registration event.  Decides whether a freshly
auto-registered certificate may be activated:

1. A certificate listed in the revocation list is revoked immediately;
   neither the registry gate nor provisioning is consulted.
2. The device identity is decoded from the certificate's Common Name
   and checked against the registry gate.  Unknown devices have their
   certificate revoked.
3. The device is provisioned from the template named by its first
   inherited provisioning policy, then its registry record is marked
   active and linked to the provisioned identity.

Revocation and whitelist rejections are terminal outcomes, not errors.
Malformed events raise :class:`RequestValidationError`; collaborator
failures propagate to the caller's retry policy.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetcert.ca.cert_utils import common_name_from_pem, device_id_from_common_name
from fleetcert.core.errors import ProvisioningTemplateNotFoundError, RequestValidationError
from fleetcert.core.types import ActivationOutcome
from fleetcert.logging import invocation_context, security_events
from fleetcert.logging.sanitize import sanitize_for_logs
from fleetcert.models.registration import RegistrationEvent

if TYPE_CHECKING:
    from fleetcert.ca.base import CertificateAuthority
    from fleetcert.clients.device_registry import DeviceRegistry
    from fleetcert.clients.provisioning import ProvisioningService
    from fleetcert.config.settings import AdmissionSettings
    from fleetcert.metrics.collector import MetricsCollector
    from fleetcert.services.revocation import RevocationStoreReader
    from fleetcert.whitelist.base import RegistryGate

log = logging.getLogger(__name__)


class AdmissionValidator:
    def __init__(  # noqa: PLR0913
        self,
        *,
        revocations: RevocationStoreReader,
        authority: CertificateAuthority,
        gate: RegistryGate,
        devices: DeviceRegistry,
        provisioning: ProvisioningService,
        settings: AdmissionSettings,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._revocations = revocations
        self._authority = authority
        self._gate = gate
        self._devices = devices
        self._provisioning = provisioning
        self._settings = settings
        self._metrics = metrics

    def activate(self, payload: dict | RegistrationEvent) -> ActivationOutcome:
        """Run admission validation for one registration event.

        Parameters
        ----------
        payload:
            The raw registration event, or an already-validated
            :class:`RegistrationEvent`.

        Returns
        -------
        ActivationOutcome
            ``REVOKED`` or ``NOT_WHITELISTED`` when the certificate was
            rejected and revoked, ``ACTIVATED`` otherwise.

        Raises
        ------
        RequestValidationError
            If a required field is missing or mistyped.
        ProvisioningTemplateNotFoundError
            If the device inherits no provisioning template.

        """
        if isinstance(payload, RegistrationEvent):
            event = payload
        else:
            try:
                event = RegistrationEvent.from_payload(payload)
            except RequestValidationError as exc:
                log.error(
                    "Rejecting malformed registration event: %s (payload=%s)",
                    exc,
                    sanitize_for_logs(payload),
                )
                self._count("validation_failed")
                raise

        with invocation_context(certificate_id=event.certificate_id):
            return self._activate(event)

    def _activate(self, event: RegistrationEvent) -> ActivationOutcome:
        cert_id = event.certificate_id

        crl = self._revocations.fetch()
        revoked = crl.find(cert_id)
        if revoked is not None:
            log.info("Certificate %s is on the revocation list, revoking", cert_id)
            self._authority.revoke_certificate(cert_id)
            security_events.certificate_revoked_at_admission(cert_id, revoked.reason.name)
            self._count("revoked")
            return ActivationOutcome.REVOKED

        description = self._authority.describe_certificate(cert_id)
        common_name = common_name_from_pem(description.certificate_pem)
        device_id = device_id_from_common_name(
            common_name,
            self._settings.common_name_encoding,
        )

        with invocation_context(device_id=device_id):
            if not self._gate.is_whitelisted(device_id):
                log.info("Device %s is not whitelisted, revoking certificate %s", device_id, cert_id)
                self._authority.revoke_certificate(cert_id)
                security_events.device_not_whitelisted(device_id, cert_id, "activate")
                self._count("not_whitelisted")
                return ActivationOutcome.NOT_WHITELISTED

            thing_name = device_id.lower()
            template_id = self._find_provisioning_template(thing_name)
            result = self._provisioning.provision_thing(
                template_id,
                {"ThingName": thing_name, "CertificateId": cert_id},
            )
            log.info(
                "Provisioned %s from template %s: %s",
                thing_name,
                template_id,
                result.thing_arn,
            )

            self._devices.update_device(
                device_id,
                {"attributes": {"status": "active"}, "identityArn": result.thing_arn},
            )
            security_events.device_activated(device_id, cert_id, result.thing_arn)
            self._count("activated")
            return ActivationOutcome.ACTIVATED

    def _find_provisioning_template(self, thing_name: str) -> str:
        policies = self._devices.list_inherited_policies(
            thing_name,
            self._settings.provisioning_policy_type,
        )
        if not policies:
            raise ProvisioningTemplateNotFoundError(thing_name)
        if len(policies) > 1:
            # Registry order decides; there is no priority rule between policies.
            log.warning(
                "Device %s inherits %d %s policies (%s); using the first",
                thing_name,
                len(policies),
                self._settings.provisioning_policy_type,
                ", ".join(p.policy_id for p in policies),
            )
        template_id = policies[0].template_id
        if template_id is None:
            log.error(
                "Policy %s of device %s has no 'template' field",
                policies[0].policy_id,
                thing_name,
            )
            raise ProvisioningTemplateNotFoundError(thing_name)
        return template_id

    def _count(self, outcome: str) -> None:
        if self._metrics is not None:
            self._metrics.increment("admissions_total", labels={"outcome": outcome})
