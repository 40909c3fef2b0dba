"""Local CSR signer -- sign device CSRs with a local root key.

Loads a PEM-encoded root certificate and private key from disk and
builds client-authentication leaf certificates from device CSRs
(key usage, EKU, AKI, SKI, basic constraints).  The resulting
certificate is then registered with the certificate authority by the
caller, together with :pyattr:`LocalCsrSigner.ca_certificate_pem`.
"""

from __future__ import annotations

import logging
import os
import secrets
import stat
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import NameOID

from fleetcert.ca.base import CAError
from fleetcert.ca.cert_utils import build_eku, build_key_usage, load_csr

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.types import (
        PrivateKeyTypes,
    )

    from fleetcert.config.settings import LocalSignerSettings

_HASH_ALGORITHMS = {
    "sha256": hashes.SHA256(),
    "sha384": hashes.SHA384(),
    "sha512": hashes.SHA512(),
}

_KEY_USAGES = ("digital_signature", "key_encipherment")
_EXTENDED_KEY_USAGES = ("client_auth",)

# Backdate notBefore to tolerate device clock skew
_CLOCK_SKEW = timedelta(minutes=5)

log = logging.getLogger(__name__)


class LocalCsrSigner:
    """Sign CSRs using a local root CA certificate and key.

    The root certificate and key are loaded lazily on first use to allow
    the process to start even if the signer is not needed (e.g. when the
    rotation CSR mode is ``authority``).
    """

    def __init__(self, settings: LocalSignerSettings) -> None:
        self._settings = settings
        self._root_cert: x509.Certificate | None = None
        self._root_key: PrivateKeyTypes | None = None
        self._hash_algorithm = _HASH_ALGORITHMS.get(
            settings.hash_algorithm,
            hashes.SHA256(),
        )

    def startup_check(self) -> None:
        """Verify root cert and key are loadable."""
        self._ensure_loaded()

    def _ensure_loaded(self) -> None:
        """Lazily load root certificate and key."""
        if self._root_cert is not None:
            return

        cert_path = self._settings.root_cert_path
        key_path = self._settings.root_key_path
        if not cert_path:
            msg = "ca.local_signer.root_cert_path is required for local CSR signing"
            raise CAError(msg)
        if not key_path:
            msg = "ca.local_signer.root_key_path is required for local CSR signing"
            raise CAError(msg)

        try:
            root_cert = x509.load_pem_x509_certificate(Path(cert_path).read_bytes())
        except FileNotFoundError:
            msg = f"Root certificate not found: {cert_path}"
            raise CAError(msg) from None
        except (OSError, ValueError) as exc:
            msg = f"Failed to load root certificate from {cert_path}: {exc}"
            raise CAError(msg) from exc

        try:
            self._root_key = serialization.load_pem_private_key(
                Path(key_path).read_bytes(),
                password=None,
            )
        except FileNotFoundError:
            msg = f"Root private key not found: {key_path}"
            raise CAError(msg) from None
        except (OSError, ValueError, TypeError) as exc:
            msg = f"Failed to load root private key from {key_path}: {exc}"
            raise CAError(msg) from exc

        self._check_key_permissions(key_path)

        self._root_cert = root_cert
        log.info(
            "Local CSR signer loaded (cert=%s, key=%s)",
            cert_path,
            key_path,
        )

    @staticmethod
    def _check_key_permissions(key_path: str) -> None:
        """Warn if private key file has overly permissive permissions."""
        try:
            mode = os.stat(key_path).st_mode
        except OSError:
            return
        if mode & (stat.S_IRGRP | stat.S_IROTH | stat.S_IWGRP | stat.S_IWOTH):
            log.warning(
                "Private key file '%s' has overly permissive "
                "permissions (mode=%o). Recommend chmod 600.",
                key_path,
                stat.S_IMODE(mode),
            )

    @property
    def ca_certificate_pem(self) -> str:
        """PEM of the signing root, as needed to register issued certificates."""
        self._ensure_loaded()
        assert self._root_cert is not None  # noqa: S101
        return self._root_cert.public_bytes(serialization.Encoding.PEM).decode("ascii")

    def sign(self, csr_pem: str, *, validity_days: int | None = None) -> str:
        """Sign *csr_pem* and return the PEM leaf certificate.

        The subject is copied from the CSR; the certificate is a
        client-authentication end-entity certificate.

        Raises
        ------
        CAError
            On a malformed CSR or any signing failure.

        """
        self._ensure_loaded()
        assert self._root_cert is not None  # noqa: S101
        assert self._root_key is not None  # noqa: S101

        csr = load_csr(csr_pem)
        days = validity_days or self._settings.validity_days
        now = datetime.now(UTC)
        # RFC 5280 sec 4.1.2.2 limits serials to 20 positive octets
        serial_number = int.from_bytes(secrets.token_bytes(20), "big") >> 1

        subject = csr.subject
        if not subject.get_attributes_for_oid(NameOID.COMMON_NAME):
            msg = "CSR subject has no Common Name"
            raise CAError(msg, retryable=False)

        try:
            builder = (
                x509.CertificateBuilder()
                .subject_name(subject)
                .issuer_name(self._root_cert.subject)
                .public_key(csr.public_key())
                .serial_number(serial_number)
                .not_valid_before(now - _CLOCK_SKEW)
                .not_valid_after(now + timedelta(days=days))
                .add_extension(
                    x509.BasicConstraints(ca=False, path_length=None),
                    critical=True,
                )
                .add_extension(build_key_usage(_KEY_USAGES), critical=True)
                .add_extension(build_eku(_EXTENDED_KEY_USAGES), critical=False)
                .add_extension(
                    x509.AuthorityKeyIdentifier.from_issuer_public_key(
                        self._root_cert.public_key(),  # type: ignore[arg-type]
                    ),
                    critical=False,
                )
                .add_extension(
                    x509.SubjectKeyIdentifier.from_public_key(csr.public_key()),  # type: ignore[arg-type]
                    critical=False,
                )
            )
            cert = builder.sign(self._root_key, self._hash_algorithm)  # type: ignore[arg-type]
        except CAError:
            raise
        except (ValueError, TypeError) as exc:
            msg = f"Failed to build/sign certificate: {exc}"
            raise CAError(msg, retryable=False) from exc

        log.info(
            "Local signer issued certificate: serial=%x, subject=%s, validity=%d days",
            serial_number,
            subject.rfc4514_string(),
            days,
        )
        return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")
