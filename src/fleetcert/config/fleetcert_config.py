"""fleetcert configuration loader built on ConfigKit.

Lifecycle::

    # 1. CLI creates the singleton (once, at startup)
    FleetCertConfig(config_file="/etc/fleetcert/config.yaml")

    # 2. Any module retrieves it afterwards
    from fleetcert.config import get_config
    cfg = get_config()
    cfg.settings.renewal.queue_url  # typed access

    # 3. Extension / dynamic access
    cfg.get("ca.backend", default="external")
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

from configkit import ConfigKit, ConfigKitMeta

from fleetcert.config.settings import FleetCertSettings, build_settings

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

_KNOWN_REGISTRY_MODES = frozenset({"managed", "identity", "allow_all"})
_KNOWN_CSR_MODES = frozenset({"authority", "local", "provisioning"})
_KNOWN_CN_ENCODINGS = frozenset({"base64", "plain"})

_SERVICE_NAMES = (
    "device_registry",
    "identity_registry",
    "provisioning",
    "blob_store",
    "queue",
    "audit_feed",
    "publisher",
)

_MAX_PAGE_SIZE = 250

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level singleton reference
# ---------------------------------------------------------------------------
_instance: FleetCertConfig | None = None


def get_config() -> FleetCertConfig:
    """Return the initialised configuration singleton.

    Raises :class:`RuntimeError` if :class:`FleetCertConfig` has not been
    created yet (i.e. the CLI entry point has not run).
    """
    if _instance is None:
        msg = (
            "Configuration not initialised. "
            "FleetCertConfig must be created with config_file= before calling get_config()."
        )
        raise RuntimeError(msg)
    return _instance


# ---------------------------------------------------------------------------
# Validation error collector
# ---------------------------------------------------------------------------


class ConfigValidationError(Exception):
    """Raised when cross-field validation finds one or more problems."""

    def __init__(self, errors: list[str]) -> None:
        """Store *errors* and build a human-readable message."""
        self.errors = errors
        body = "\n".join(f"  - {e}" for e in errors)
        super().__init__(f"Configuration validation failed:\n{body}")


# ---------------------------------------------------------------------------
# Environment variable resolution
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with env var value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    var_name = match.group(1)
    fallback = match.group(2)
    resolved = os.environ.get(var_name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    raise ConfigValidationError(
        [
            f"Environment variable '${{{var_name}}}' referenced "
            f"at '{path}' is not set and has no default",
        ],
    )


def _resolve_env_vars(
    data: Any,  # noqa: ANN401
    path: str = "",
) -> None:
    """Walk *data* in-place and resolve ``${VAR}``/``${VAR:-default}`` strings."""
    if isinstance(data, dict):
        for key in data:
            child_path = f"{path}.{key}" if path else key
            if isinstance(data[key], str):
                data[key] = _resolve_value(data[key], child_path)
            elif isinstance(data[key], (dict, list)):
                _resolve_env_vars(data[key], child_path)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child_path = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child_path)
            elif isinstance(item, (dict, list)):
                _resolve_env_vars(item, child_path)


# ---------------------------------------------------------------------------
# Config class
# ---------------------------------------------------------------------------


class FleetCertConfig(ConfigKit):
    """Central configuration for the fleetcert orchestrator.

    Subclasses :class:`configkit.ConfigKit`.  The JSON schema is
    bundled at ``config/schema.json``; users supply only ``config_file``.

    After construction the typed settings tree is available at
    :pyattr:`settings` and the raw dict via :pyattr:`data` /
    :pymeth:`get`.
    """

    def __init__(
        self,
        *,
        config_file: str | Path,
        schema_file: str | Path | None = None,  # noqa: ARG002
    ) -> None:
        """Initialise the configuration singleton.

        Parameters
        ----------
        config_file:
            Path to the YAML/JSON configuration file.
        schema_file:
            Ignored.  Exists only to satisfy the
            :class:`ConfigKitMeta` singleton guard.

        """
        global _instance  # noqa: PLW0603

        super().__init__(
            config_file=config_file,
            schema_file=_SCHEMA_PATH,
        )

        self._settings: FleetCertSettings = build_settings(self.data)
        _instance = self

    # -- lifecycle overrides ------------------------------------------------

    def _load(self) -> None:
        """Load config file then resolve ``${VAR}`` env-var references.

        Runs env-var resolution **before** schema validation so that
        substituted values (e.g. ``${LOG_LEVEL:-INFO}``) are checked
        against enum constraints in the schema.
        """
        super()._load()
        _resolve_env_vars(self._data)  # noqa: SLF001

    # -- typed access -------------------------------------------------------

    @property
    def settings(self) -> FleetCertSettings:
        """Fully-typed, frozen settings tree."""
        return self._settings

    # -- cross-field validation ---------------------------------------------

    def additional_checks(self) -> None:  # noqa: C901, PLR0912
        """Semantic & cross-field validation.

        Called automatically by ConfigKit **after** schema validation
        passes.  All problems are collected and raised together.
        """
        errors: list[str] = []
        warnings: list[str] = []

        ca = self.data.get("ca") or {}
        services = self.data.get("services") or {}
        registry = self.data.get("registry") or {}
        admission = self.data.get("admission") or {}
        renewal = self.data.get("renewal") or {}
        rotation = self.data.get("rotation") or {}

        # -- CA --
        ca_backend = ca.get("backend", "external")
        if ca_backend == "external":
            if not (ca.get("external") or {}).get("base_url"):
                errors.append(
                    "ca.external.base_url is required when ca.backend is 'external'",
                )
        elif not ca_backend.startswith("ext:"):
            errors.append(
                f"ca.backend must be 'external' or 'ext:<module.Class>' (got '{ca_backend}')",
            )

        # -- registry gate --
        mode = registry.get("mode", "managed")
        if mode not in _KNOWN_REGISTRY_MODES:
            errors.append(
                f"registry.mode '{mode}' is unknown; "
                f"expected one of {sorted(_KNOWN_REGISTRY_MODES)}",
            )
        elif mode == "allow_all":
            warnings.append(
                "registry.mode is 'allow_all': every device identity is treated as whitelisted",
            )

        # -- admission --
        encoding = admission.get("common_name_encoding", "base64")
        if encoding not in _KNOWN_CN_ENCODINGS:
            errors.append(
                f"admission.common_name_encoding '{encoding}' is unknown; "
                f"expected one of {sorted(_KNOWN_CN_ENCODINGS)}",
            )
        if not admission.get("crl_bucket"):
            warnings.append(
                "admission.crl_bucket is not set; admission checks will fail",
            )

        # -- renewal --
        page_size = renewal.get("page_size", 10)
        if not isinstance(page_size, int) or not 1 <= page_size <= _MAX_PAGE_SIZE:
            errors.append(
                f"renewal.page_size must be between 1 and {_MAX_PAGE_SIZE} (got {page_size})",
            )
        if not renewal.get("queue_url"):
            warnings.append("renewal.queue_url is not set; renewal fan-out will fail")

        # -- rotation --
        csr_mode = rotation.get("csr_mode", "authority")
        if csr_mode not in _KNOWN_CSR_MODES:
            errors.append(
                f"rotation.csr_mode '{csr_mode}' is unknown; "
                f"expected one of {sorted(_KNOWN_CSR_MODES)}",
            )
        elif csr_mode == "local":
            signer = ca.get("local_signer") or {}
            if not signer.get("root_cert_path"):
                errors.append(
                    "ca.local_signer.root_cert_path is required when rotation.csr_mode is 'local'",
                )
            if not signer.get("root_key_path"):
                errors.append(
                    "ca.local_signer.root_key_path is required when rotation.csr_mode is 'local'",
                )
        elif csr_mode == "provisioning" and not rotation.get("provisioning_template"):
            errors.append(
                "rotation.provisioning_template is required "
                "when rotation.csr_mode is 'provisioning'",
            )

        for name, template in (rotation.get("topics") or {}).items():
            if "{deviceId}" not in str(template):
                errors.append(
                    f"rotation.topics.{name} must contain the '{{deviceId}}' placeholder",
                )

        # -- services --
        for name in _SERVICE_NAMES:
            endpoint = services.get(name) or {}
            if endpoint.get("client_cert_path") and not endpoint.get("client_key_path"):
                errors.append(
                    f"services.{name}.client_key_path is required "
                    f"when services.{name}.client_cert_path is set",
                )
            if endpoint.get("base_url", "").startswith("http://"):
                warnings.append(
                    f"services.{name}.base_url uses plain HTTP",
                )

        for w in warnings:
            log.warning("Config warning: %s", w)

        if errors:
            raise ConfigValidationError(errors)

    # -- helpers ------------------------------------------------------------

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton -- testing only."""
        global _instance  # noqa: PLW0603
        _instance = None
        ConfigKitMeta.reset()

    def __repr__(self) -> str:
        """Return a developer-friendly representation."""
        source = self.data.get("_source", "?")
        return f"<FleetCertConfig config_file={source}>"
