"""Abstract base class for certificate authority backends.

All authority backends (built-in and custom) must inherit from
:class:`CertificateAuthority`.  The authority owns the certificate
registry of the fleet: it issues and registers certificates, tracks
their status, attaches authorization policies to them and associates
them with device identities.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from fleetcert.core.errors import CollaboratorError
from fleetcert.core.types import CertificateStatus

if TYPE_CHECKING:
    from fleetcert.config.settings import CASettings
    from fleetcert.models.page import Page

log = logging.getLogger(__name__)


class CAError(CollaboratorError):
    """Raised by authority backends on any failed operation.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    retryable:
        Whether the failure is transient and the operation may be retried.

    """


@dataclass(frozen=True)
class IssuedCertificate:
    """Result of an issuance, signing or registration operation.

    Attributes
    ----------
    certificate_id:
        Authority-assigned certificate identifier.
    certificate_arn:
        Fully-qualified resource name of the certificate.
    certificate_pem:
        PEM-encoded leaf certificate.
    private_key_pem:
        PEM private key, present only when the authority generated the
        key pair.
    public_key_pem:
        PEM public key, present only when the authority generated the
        key pair.

    """

    certificate_id: str
    certificate_arn: str
    certificate_pem: str
    private_key_pem: str | None = None
    public_key_pem: str | None = None


@dataclass(frozen=True)
class CertificateDescription:
    certificate_id: str
    certificate_arn: str
    certificate_pem: str
    status: str


class CertificateAuthority(abc.ABC):
    """Base class for all certificate authority implementations.

    Parameters
    ----------
    ca_settings:
        The full ``ca`` configuration section.

    """

    def __init__(self, ca_settings: CASettings) -> None:
        self._settings = ca_settings

    # -- issuance ----------------------------------------------------------

    @abc.abstractmethod
    def issue_certificate(self, *, set_active: bool = True) -> IssuedCertificate:
        """Generate a new key pair and certificate.

        The returned certificate carries ``private_key_pem``.
        """

    @abc.abstractmethod
    def sign_csr(self, csr_pem: str, *, set_active: bool = True) -> IssuedCertificate:
        """Issue a certificate bound to the public key of *csr_pem*."""

    @abc.abstractmethod
    def register_certificate(
        self,
        certificate_pem: str,
        *,
        ca_certificate_pem: str | None = None,
        set_active: bool = True,
    ) -> IssuedCertificate:
        """Register a certificate signed elsewhere (e.g. by a local signer)."""

    # -- lifecycle ---------------------------------------------------------

    @abc.abstractmethod
    def describe_certificate(self, certificate_id: str) -> CertificateDescription:
        """Return the PEM, ARN and status of *certificate_id*."""

    @abc.abstractmethod
    def update_certificate_status(
        self,
        certificate_id: str,
        status: CertificateStatus,
    ) -> None:
        """Set the status of *certificate_id*."""

    def revoke_certificate(self, certificate_id: str) -> None:
        """Revoke *certificate_id* so it can never authenticate again."""
        self.update_certificate_status(certificate_id, CertificateStatus.REVOKED)

    @abc.abstractmethod
    def delete_certificate(self, certificate_id: str) -> None:
        """Delete an inactive, detached certificate."""

    # -- policies ------------------------------------------------------------

    @abc.abstractmethod
    def list_attached_policies(self, certificate_arn: str) -> list[str]:
        """Return the names of policies attached to *certificate_arn*."""

    @abc.abstractmethod
    def attach_policy(self, certificate_arn: str, policy_name: str) -> None:
        """Attach policy *policy_name* to *certificate_arn*."""

    @abc.abstractmethod
    def detach_policy(self, certificate_arn: str, policy_name: str) -> None:
        """Detach policy *policy_name* from *certificate_arn*."""

    # -- device association ------------------------------------------------

    @abc.abstractmethod
    def attach_to_device(self, certificate_arn: str, device_id: str) -> None:
        """Associate *certificate_arn* with the device identity *device_id*."""

    @abc.abstractmethod
    def detach_from_device(self, certificate_arn: str, device_id: str) -> None:
        """Remove the association between *certificate_arn* and *device_id*."""

    @abc.abstractmethod
    def list_devices_for_certificate(
        self,
        certificate_arn: str,
        *,
        page_token: str | None = None,
        max_results: int | None = None,
    ) -> Page[str]:
        """Return one page of device identities associated with *certificate_arn*."""

    def startup_check(self) -> None:
        """Optional startup health check.

        Called during container initialisation to verify the backend is
        correctly configured.  Default implementation is a no-op.

        Raises
        ------
        CAError
            If the backend is misconfigured.

        """
