r"""External authority backend -- drives a remote certificate registry over HTTPS.

Authentication and retry behaviour come from the shared
:class:`~fleetcert.clients.http.JsonHttpClient` and the
``ca.external`` endpoint settings.

API contract
------------
All bodies are JSON.  Certificate objects are returned as::

    {
        "certificateId": "3f2a...",
        "certificateArn": "arn:...:cert/3f2a...",
        "certificatePem": "-----BEGIN CERTIFICATE-----\\n...",
        "status": "ACTIVE",
        "keyPair": {"privateKey": "...", "publicKey": "..."}   # issue only
    }

==========  ==========================================  ===========================
Method      Path                                        Body
==========  ==========================================  ===========================
``POST``    ``/certificates``                           ``{setAsActive}``
``POST``    ``/certificates/sign``                      ``{csr, setAsActive}``
``POST``    ``/certificates/register``                  ``{certificatePem,
                                                        caCertificatePem,
                                                        setAsActive}``
``GET``     ``/certificates/{id}``
``PUT``     ``/certificates/{id}/status``               ``{status}``
``DELETE``  ``/certificates/{id}``
``GET``     ``/principals/{arn}/policies``              -> ``{policies: [name]}``
``PUT``     ``/principals/{arn}/policies/{name}``
``DELETE``  ``/principals/{arn}/policies/{name}``
``PUT``     ``/things/{device}/principals``             ``{principal}``
``DELETE``  ``/things/{device}/principals``             ``{principal}``
``GET``     ``/principals/{arn}/things``                -> ``{things: [..], nextToken}``
==========  ==========================================  ===========================
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fleetcert.ca.base import CAError, CertificateAuthority, CertificateDescription, IssuedCertificate
from fleetcert.clients.http import JsonHttpClient
from fleetcert.models.page import Page

if TYPE_CHECKING:
    from fleetcert.config.settings import CASettings
    from fleetcert.core.types import CertificateStatus

log = logging.getLogger(__name__)


class ExternalCertificateAuthority(CertificateAuthority):
    """Forwards certificate operations to a remote authority over HTTPS."""

    def __init__(
        self,
        ca_settings: CASettings,
        http: JsonHttpClient | None = None,
    ) -> None:
        super().__init__(ca_settings)
        self._http = http or JsonHttpClient(
            ca_settings.external,
            name="certificate authority",
            error_cls=CAError,
        )

    def startup_check(self) -> None:
        """Verify external authority settings are configured."""
        if not self._settings.external.base_url:
            msg = "ca.external.base_url is required for the external authority backend"
            raise CAError(msg)

    # -- helpers ------------------------------------------------------------

    def _call(self, method: str, path: str, payload: dict | None = None, **kwargs) -> dict:
        result = self._http.request_json(method, path, payload, **kwargs)
        return result or {}

    @staticmethod
    def _to_issued(data: dict) -> IssuedCertificate:
        for field_name in ("certificateId", "certificateArn", "certificatePem"):
            if not data.get(field_name):
                msg = f"Authority response missing '{field_name}' field"
                raise CAError(msg, retryable=False)
        key_pair = data.get("keyPair") or {}
        return IssuedCertificate(
            certificate_id=data["certificateId"],
            certificate_arn=data["certificateArn"],
            certificate_pem=data["certificatePem"],
            private_key_pem=key_pair.get("privateKey"),
            public_key_pem=key_pair.get("publicKey"),
        )

    def _cert_path(self, certificate_id: str) -> str:
        return f"/certificates/{self._http.quote(certificate_id)}"

    def _principal_path(self, certificate_arn: str) -> str:
        return f"/principals/{self._http.quote(certificate_arn)}"

    # -- issuance ----------------------------------------------------------

    def issue_certificate(self, *, set_active: bool = True) -> IssuedCertificate:
        issued = self._to_issued(
            self._call("POST", "/certificates", {"setAsActive": set_active}),
        )
        if not issued.private_key_pem:
            msg = "Authority response missing generated private key"
            raise CAError(msg, retryable=False)
        log.info("Authority issued certificate %s", issued.certificate_id)
        return issued

    def sign_csr(self, csr_pem: str, *, set_active: bool = True) -> IssuedCertificate:
        issued = self._to_issued(
            self._call(
                "POST",
                "/certificates/sign",
                {"csr": csr_pem, "setAsActive": set_active},
            ),
        )
        log.info("Authority signed CSR as certificate %s", issued.certificate_id)
        return issued

    def register_certificate(
        self,
        certificate_pem: str,
        *,
        ca_certificate_pem: str | None = None,
        set_active: bool = True,
    ) -> IssuedCertificate:
        payload: dict = {"certificatePem": certificate_pem, "setAsActive": set_active}
        if ca_certificate_pem is not None:
            payload["caCertificatePem"] = ca_certificate_pem
        issued = self._to_issued(self._call("POST", "/certificates/register", payload))
        log.info("Authority registered certificate %s", issued.certificate_id)
        return issued

    # -- lifecycle ---------------------------------------------------------

    def describe_certificate(self, certificate_id: str) -> CertificateDescription:
        data = self._call("GET", self._cert_path(certificate_id))
        issued = self._to_issued(data)
        return CertificateDescription(
            certificate_id=issued.certificate_id,
            certificate_arn=issued.certificate_arn,
            certificate_pem=issued.certificate_pem,
            status=data.get("status", ""),
        )

    def update_certificate_status(
        self,
        certificate_id: str,
        status: CertificateStatus,
    ) -> None:
        self._call(
            "PUT",
            f"{self._cert_path(certificate_id)}/status",
            {"status": str(status)},
        )
        log.info("Authority set certificate %s to %s", certificate_id, status)

    def delete_certificate(self, certificate_id: str) -> None:
        self._call("DELETE", self._cert_path(certificate_id))
        log.info("Authority deleted certificate %s", certificate_id)

    # -- policies ------------------------------------------------------------

    def list_attached_policies(self, certificate_arn: str) -> list[str]:
        data = self._call("GET", f"{self._principal_path(certificate_arn)}/policies")
        return [str(name) for name in data.get("policies") or []]

    def attach_policy(self, certificate_arn: str, policy_name: str) -> None:
        self._call(
            "PUT",
            f"{self._principal_path(certificate_arn)}/policies/{self._http.quote(policy_name)}",
        )

    def detach_policy(self, certificate_arn: str, policy_name: str) -> None:
        self._call(
            "DELETE",
            f"{self._principal_path(certificate_arn)}/policies/{self._http.quote(policy_name)}",
        )

    # -- device association ------------------------------------------------

    def attach_to_device(self, certificate_arn: str, device_id: str) -> None:
        self._call(
            "PUT",
            f"/things/{self._http.quote(device_id)}/principals",
            {"principal": certificate_arn},
        )

    def detach_from_device(self, certificate_arn: str, device_id: str) -> None:
        self._call(
            "DELETE",
            f"/things/{self._http.quote(device_id)}/principals",
            {"principal": certificate_arn},
        )

    def list_devices_for_certificate(
        self,
        certificate_arn: str,
        *,
        page_token: str | None = None,
        max_results: int | None = None,
    ) -> Page[str]:
        data = self._call(
            "GET",
            f"{self._principal_path(certificate_arn)}/things",
            query={"nextToken": page_token, "maxResults": max_results},
        )
        return Page(
            items=tuple(str(t) for t in data.get("things") or []),
            next_token=data.get("nextToken") or None,
        )
