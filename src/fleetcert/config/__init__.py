"""Configuration subsystem for fleetcert.

Public API::

    from fleetcert.config import get_config, FleetCertConfig

    # At startup (CLI only):
    FleetCertConfig(config_file="config.yaml")

    # Everywhere else:
    cfg   = get_config()
    mode  = cfg.settings.registry.mode     # typed access
    custom = cfg.get("ca.backend")         # dynamic dot-path
"""

from fleetcert.config.fleetcert_config import (
    ConfigValidationError,
    FleetCertConfig,
    get_config,
)
from fleetcert.config.settings import (
    AdmissionSettings,
    AuditLogSettings,
    CASettings,
    DatabaseSettings,
    EndpointSettings,
    FleetCertSettings,
    LocalSignerSettings,
    LoggingSettings,
    RegistrySettings,
    RenewalSettings,
    RotationSettings,
    RotationTopicSettings,
    ServicesSettings,
)

__all__ = [
    "AdmissionSettings",
    "AuditLogSettings",
    "CASettings",
    "ConfigValidationError",
    "DatabaseSettings",
    "EndpointSettings",
    "FleetCertConfig",
    "FleetCertSettings",
    "LocalSignerSettings",
    "LoggingSettings",
    "RegistrySettings",
    "RenewalSettings",
    "RotationSettings",
    "RotationTopicSettings",
    "ServicesSettings",
    "get_config",
]
