"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders
are what the application actually reads.

Access pattern::

    from fleetcert.config import get_config

    renewal = get_config().settings.renewal
    print(renewal.queue_url, renewal.page_size)
"""

from __future__ import annotations

from dataclasses import dataclass

# ---------------------------------------------------------------------------
# HTTP endpoints (shared shape for every collaborator)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EndpointSettings:
    """Base URL, auth and TLS settings for one HTTP collaborator."""

    base_url: str
    auth_header: str
    auth_value: str
    ca_cert_path: str | None
    client_cert_path: str | None
    client_key_path: str | None
    timeout_seconds: int
    max_retries: int
    retry_delay_seconds: float


def _build_endpoint(data: dict | None) -> EndpointSettings:
    d = data or {}
    return EndpointSettings(
        base_url=d.get("base_url", "").rstrip("/"),
        auth_header=d.get("auth_header", "Authorization"),
        auth_value=d.get("auth_value", ""),
        ca_cert_path=d.get("ca_cert_path"),
        client_cert_path=d.get("client_cert_path"),
        client_key_path=d.get("client_key_path"),
        timeout_seconds=d.get("timeout_seconds", 30),
        max_retries=d.get("max_retries", 2),
        retry_delay_seconds=float(d.get("retry_delay_seconds", 1.0)),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuditLogSettings:
    """Audit log output settings (file, rotation)."""

    enabled: bool
    file: str | None
    max_file_size_bytes: int
    backup_count: int


@dataclass(frozen=True)
class LoggingSettings:
    """Application logging configuration (level, format, audit)."""

    level: str
    format: str
    audit: AuditLogSettings


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    a = d.get("audit") or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "json"),
        audit=AuditLogSettings(
            enabled=a.get("enabled", True),
            file=a.get("file"),
            max_file_size_bytes=a.get("max_file_size_bytes", 104857600),
            backup_count=a.get("backup_count", 10),
        ),
    )


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseSettings:
    """PostgreSQL connection and pool settings for the renewal ledger."""

    host: str
    port: int
    database: str
    user: str
    password: str
    sslmode: str
    min_connections: int
    max_connections: int
    connection_timeout: float
    auto_setup: bool


def _build_database(data: dict | None) -> DatabaseSettings:
    d = data or {}
    return DatabaseSettings(
        host=d.get("host", "localhost"),
        port=d.get("port", 5432),
        database=d["database"],
        user=d["user"],
        password=d.get("password", ""),
        sslmode=d.get("sslmode", "prefer"),
        min_connections=d.get("min_connections", 1),
        max_connections=d.get("max_connections", 5),
        connection_timeout=d.get("connection_timeout", 30.0),
        auto_setup=d.get("auto_setup", False),
    )


# ---------------------------------------------------------------------------
# Certificate authority
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LocalSignerSettings:
    """Root CA material used to sign device CSRs locally."""

    root_cert_path: str
    root_key_path: str
    hash_algorithm: str
    validity_days: int


@dataclass(frozen=True)
class CASettings:
    """Certificate authority configuration (backend, signer, breaker)."""

    backend: str
    external: EndpointSettings
    local_signer: LocalSignerSettings
    circuit_breaker_failure_threshold: int
    circuit_breaker_recovery_timeout: float


def _build_ca(data: dict | None) -> CASettings:
    d = data or {}
    signer_d = d.get("local_signer") or {}
    return CASettings(
        backend=d.get("backend", "external"),
        external=_build_endpoint(d.get("external")),
        local_signer=LocalSignerSettings(
            root_cert_path=signer_d.get("root_cert_path", ""),
            root_key_path=signer_d.get("root_key_path", ""),
            hash_algorithm=signer_d.get("hash_algorithm", "sha256"),
            validity_days=signer_d.get("validity_days", 365),
        ),
        circuit_breaker_failure_threshold=d.get("circuit_breaker_failure_threshold", 5),
        circuit_breaker_recovery_timeout=float(
            d.get("circuit_breaker_recovery_timeout", 30),
        ),
    )


# ---------------------------------------------------------------------------
# Collaborator services
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServicesSettings:
    """HTTP endpoints of every non-CA collaborator."""

    device_registry: EndpointSettings
    identity_registry: EndpointSettings
    provisioning: EndpointSettings
    blob_store: EndpointSettings
    queue: EndpointSettings
    audit_feed: EndpointSettings
    publisher: EndpointSettings


def _build_services(data: dict | None) -> ServicesSettings:
    d = data or {}
    return ServicesSettings(
        device_registry=_build_endpoint(d.get("device_registry")),
        identity_registry=_build_endpoint(d.get("identity_registry")),
        provisioning=_build_endpoint(d.get("provisioning")),
        blob_store=_build_endpoint(d.get("blob_store")),
        queue=_build_endpoint(d.get("queue")),
        audit_feed=_build_endpoint(d.get("audit_feed")),
        publisher=_build_endpoint(d.get("publisher")),
    )


# ---------------------------------------------------------------------------
# Registry gate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RegistrySettings:
    """Registry gate strategy and the status written on success."""

    mode: str
    status_key: str
    status_value: str


def _build_registry(data: dict | None) -> RegistrySettings:
    d = data or {}
    return RegistrySettings(
        mode=d.get("mode", "managed"),
        status_key=d.get("status_key", "status"),
        status_value=d.get("status_value", "active"),
    )


# ---------------------------------------------------------------------------
# Admission
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AdmissionSettings:
    """Where the revocation list lives and how device ids are derived."""

    crl_bucket: str
    crl_key: str
    provisioning_policy_type: str
    common_name_encoding: str


def _build_admission(data: dict | None) -> AdmissionSettings:
    d = data or {}
    return AdmissionSettings(
        crl_bucket=d.get("crl_bucket", ""),
        crl_key=d.get("crl_key", "crl/crl.json"),
        provisioning_policy_type=d.get("provisioning_policy_type", "ProvisioningTemplate"),
        common_name_encoding=d.get("common_name_encoding", "base64"),
    )


# ---------------------------------------------------------------------------
# Renewal
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RenewalSettings:
    """Fleet renewal scanner and processor settings."""

    queue_url: str
    check_name: str
    page_size: int
    certificates_bucket: str


def _build_renewal(data: dict | None) -> RenewalSettings:
    d = data or {}
    return RenewalSettings(
        queue_url=d.get("queue_url", ""),
        check_name=d.get("check_name", "DEVICE_CERTIFICATE_EXPIRING_CHECK"),
        page_size=d.get("page_size", 10),
        certificates_bucket=d.get("certificates_bucket", ""),
    )


# ---------------------------------------------------------------------------
# Rotation
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RotationTopicSettings:
    """Per-device response channels; ``{deviceId}`` is substituted."""

    get_success: str
    get_failure: str
    ack_success: str
    ack_failure: str


@dataclass(frozen=True)
class RotationSettings:
    """Device-initiated certificate rotation settings."""

    csr_mode: str
    provisioning_template: str | None
    rotated_certificate_policy: str | None
    delete_previous_certificate: bool
    topics: RotationTopicSettings


def _build_rotation(data: dict | None) -> RotationSettings:
    d = data or {}
    t = d.get("topics") or {}
    return RotationSettings(
        csr_mode=d.get("csr_mode", "authority"),
        provisioning_template=d.get("provisioning_template"),
        rotated_certificate_policy=d.get("rotated_certificate_policy"),
        delete_previous_certificate=d.get("delete_previous_certificate", False),
        topics=RotationTopicSettings(
            get_success=t.get("get_success", "fleetcert/{deviceId}/get/accepted"),
            get_failure=t.get("get_failure", "fleetcert/{deviceId}/get/rejected"),
            ack_success=t.get("ack_success", "fleetcert/{deviceId}/ack/accepted"),
            ack_failure=t.get("ack_failure", "fleetcert/{deviceId}/ack/rejected"),
        ),
    )


# ---------------------------------------------------------------------------
# Root settings aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FleetCertSettings:
    logging: LoggingSettings
    database: DatabaseSettings
    ca: CASettings
    services: ServicesSettings
    registry: RegistrySettings
    admission: AdmissionSettings
    renewal: RenewalSettings
    rotation: RotationSettings


def build_settings(data: dict) -> FleetCertSettings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`FleetCertConfig` initialization after
    schema validation and environment-variable resolution.
    """
    return FleetCertSettings(
        logging=_build_logging(data.get("logging")),
        database=_build_database(data.get("database")),
        ca=_build_ca(data.get("ca")),
        services=_build_services(data.get("services")),
        registry=_build_registry(data.get("registry")),
        admission=_build_admission(data.get("admission")),
        renewal=_build_renewal(data.get("renewal")),
        rotation=_build_rotation(data.get("rotation")),
    )
