"""Certificate authority backends and helpers."""

from fleetcert.ca.base import (
    CAError,
    CertificateAuthority,
    CertificateDescription,
    IssuedCertificate,
)

__all__ = [
    "CAError",
    "CertificateAuthority",
    "CertificateDescription",
    "IssuedCertificate",
]
