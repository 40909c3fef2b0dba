"""Certificate parsing and extension helpers.

Subject parsing derives the device identity from a registered
certificate's Common Name; the extension builders are shared with the
local CSR signer.
"""

from __future__ import annotations

import base64
import binascii

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from fleetcert.ca.base import CAError
from fleetcert.core.errors import CertificateSubjectError

# ---------------------------------------------------------------------------
# Subject parsing
# ---------------------------------------------------------------------------


def common_name_from_pem(certificate_pem: str) -> str:
    """Return the subject Common Name of a PEM certificate.

    Raises
    ------
    CertificateSubjectError
        If the PEM cannot be parsed or carries no Common Name.

    """
    try:
        cert = x509.load_pem_x509_certificate(certificate_pem.encode("ascii"))
    except (ValueError, UnicodeEncodeError) as exc:
        msg = f"Certificate PEM could not be parsed: {exc}"
        raise CertificateSubjectError(msg) from exc

    attrs = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        msg = "Certificate subject has no Common Name"
        raise CertificateSubjectError(msg)
    value = attrs[0].value
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    return value.strip()


def device_id_from_common_name(common_name: str, encoding: str = "base64") -> str:
    """Decode the device identity carried in a Common Name.

    Devices enrolled through just-in-time registration carry their
    device id base64-encoded in the CN; ``plain`` uses the CN as-is.
    """
    if encoding == "plain":
        device_id = common_name
    else:
        try:
            padded = common_name + "=" * (-len(common_name) % 4)
            device_id = base64.b64decode(padded, validate=True).decode("utf-8")
        except (binascii.Error, ValueError) as exc:
            msg = f"Common Name '{common_name}' is not valid base64: {exc}"
            raise CertificateSubjectError(msg) from exc
    if not device_id.strip():
        msg = "Common Name does not carry a device identity"
        raise CertificateSubjectError(msg)
    return device_id


def load_csr(csr_pem: str) -> x509.CertificateSigningRequest:
    """Parse a PEM CSR and check its self-signature.

    Raises
    ------
    CAError
        If the CSR is malformed or its signature is invalid.

    """
    try:
        csr = x509.load_pem_x509_csr(csr_pem.encode("ascii"))
    except (ValueError, UnicodeEncodeError) as exc:
        msg = f"CSR could not be parsed: {exc}"
        raise CAError(msg, retryable=False) from exc
    if not csr.is_signature_valid:
        msg = "CSR signature is invalid"
        raise CAError(msg, retryable=False)
    return csr


# ---------------------------------------------------------------------------
# Key usage / EKU mappings
# ---------------------------------------------------------------------------

_EKU_OIDS = {
    "server_auth": ExtendedKeyUsageOID.SERVER_AUTH,
    "client_auth": ExtendedKeyUsageOID.CLIENT_AUTH,
}


def build_key_usage(usages: tuple[str, ...]) -> x509.KeyUsage:
    """Build an :class:`x509.KeyUsage` extension from config strings."""
    usage_set = set(usages)
    return x509.KeyUsage(
        digital_signature="digital_signature" in usage_set,
        content_commitment=False,
        key_encipherment="key_encipherment" in usage_set,
        data_encipherment=False,
        key_agreement="key_agreement" in usage_set,
        key_cert_sign=False,
        crl_sign=False,
        encipher_only=False,
        decipher_only=False,
    )


def build_eku(ekus: tuple[str, ...]) -> x509.ExtendedKeyUsage:
    """Build an :class:`x509.ExtendedKeyUsage` extension from config strings."""
    oids = []
    for name in ekus:
        oid = _EKU_OIDS.get(name)
        if oid is None:
            msg = f"Unknown extended key usage '{name}'; supported: {sorted(_EKU_OIDS)}"
            raise CAError(msg)
        oids.append(oid)
    return x509.ExtendedKeyUsage(oids)
