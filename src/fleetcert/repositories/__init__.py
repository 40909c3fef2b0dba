"""Repository classes for the fleetcert persistence layer.

Each repository extends :class:`pypgkit.BaseRepository` with custom
query methods for the fleetcert domain.
"""

from fleetcert.repositories.renewal import CertificateRenewalRepository

__all__ = [
    "CertificateRenewalRepository",
]
