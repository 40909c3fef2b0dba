"""Provisioning service client.

Provisions a device identity from a template.  When the template
creates the certificate itself (CSR provisioning) the result also
carries the new certificate.

API contract::

    POST /things  body: {"provisioningTemplateId", "parameters", "csr"?}
                  ->   {"resourceArns": {"thing", "certificate"?},
                        "certificateId"?, "certificatePem"?}
"""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fleetcert.core.errors import CollaboratorError

if TYPE_CHECKING:
    from fleetcert.clients.http import JsonHttpClient


@dataclass(frozen=True)
class ProvisionResult:
    thing_arn: str
    certificate_id: str | None = None
    certificate_arn: str | None = None
    certificate_pem: str | None = None


class ProvisioningService(abc.ABC):
    @abc.abstractmethod
    def provision_thing(
        self,
        template_id: str,
        parameters: dict[str, str],
        *,
        csr: str | None = None,
    ) -> ProvisionResult:
        """Provision a device identity from *template_id*."""


class HttpProvisioningService(ProvisioningService):
    def __init__(self, http: JsonHttpClient) -> None:
        self._http = http

    def provision_thing(
        self,
        template_id: str,
        parameters: dict[str, str],
        *,
        csr: str | None = None,
    ) -> ProvisionResult:
        payload: dict = {"provisioningTemplateId": template_id, "parameters": parameters}
        if csr is not None:
            payload["csr"] = csr
        data = self._http.request_json("POST", "/things", payload) or {}

        arns = data.get("resourceArns") or {}
        if not arns.get("thing"):
            msg = "Provisioning response missing 'resourceArns.thing'"
            raise CollaboratorError(msg, retryable=False)
        return ProvisionResult(
            thing_arn=arns["thing"],
            certificate_id=data.get("certificateId"),
            certificate_arn=arns.get("certificate"),
            certificate_pem=data.get("certificatePem"),
        )
