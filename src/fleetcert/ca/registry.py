"""Certificate authority backend registry.

Loads the configured authority backend by name and returns an
initialised :class:`CertificateAuthority`, wrapped in a circuit
breaker.  Supports the built-in ``external`` backend and custom
backends via the ``ext:`` prefix.

Usage::

    from fleetcert.ca.registry import load_certificate_authority

    authority = load_certificate_authority(ca_settings)
    authority.describe_certificate("3f2a...")
"""

from __future__ import annotations

import importlib
import logging
from typing import TYPE_CHECKING

from fleetcert.ca.base import CAError, CertificateAuthority
from fleetcert.ca.circuit_breaker import CircuitBreakerAuthority

if TYPE_CHECKING:
    from fleetcert.config.settings import CASettings

log = logging.getLogger(__name__)

# Maps config string → (module_path, class_name)
_BUILTIN_BACKENDS: dict[str, tuple[str, str]] = {
    "external": ("fleetcert.ca.external", "ExternalCertificateAuthority"),
}


def load_certificate_authority(
    ca_settings: CASettings,
    *,
    circuit_breaker: bool = True,
) -> CertificateAuthority:
    """Load and return the configured certificate authority.

    Parameters
    ----------
    ca_settings:
        The ``ca`` section from :class:`FleetCertSettings`.
    circuit_breaker:
        Wrap the backend in a :class:`CircuitBreakerAuthority`.

    Raises
    ------
    CAError
        If the backend cannot be loaded.

    """
    backend_name = ca_settings.backend

    if backend_name in _BUILTIN_BACKENDS:
        mod_path, cls_name = _BUILTIN_BACKENDS[backend_name]
        authority = _instantiate(mod_path, cls_name, backend_name, ca_settings)
    elif backend_name.startswith("ext:"):
        fqn = backend_name[4:]
        mod_path, _, cls_name = fqn.rpartition(".")
        if not mod_path:
            msg = (
                f"Invalid external authority backend '{fqn}': must be fully "
                "qualified (e.g. 'mypackage.module.ClassName')"
            )
            raise CAError(msg)
        authority = _instantiate(mod_path, cls_name, backend_name, ca_settings)
    else:
        msg = (
            f"Unknown authority backend '{backend_name}'; "
            f"built-in options: {sorted(_BUILTIN_BACKENDS)}. "
            f"Use 'ext:mypackage.module.ClassName' for custom backends."
        )
        raise CAError(msg)

    if not circuit_breaker:
        return authority
    return CircuitBreakerAuthority(
        authority,
        ca_settings,
        failure_threshold=ca_settings.circuit_breaker_failure_threshold,
        recovery_timeout=ca_settings.circuit_breaker_recovery_timeout,
    )


def _instantiate(
    mod_path: str,
    cls_name: str,
    label: str,
    ca_settings: CASettings,
) -> CertificateAuthority:
    try:
        module = importlib.import_module(mod_path)
        cls = getattr(module, cls_name)
    except (ImportError, AttributeError) as exc:
        msg = f"Failed to load authority backend '{label}': {exc}"
        raise CAError(msg) from exc

    _validate_class(cls, label)
    authority = cls(ca_settings)
    log.info("Loaded certificate authority backend: %s", label)
    return authority


def _validate_class(cls: type, label: str) -> None:
    """Verify that a backend class implements every abstract operation."""
    if not (isinstance(cls, type) and issubclass(cls, CertificateAuthority)):
        msg = f"Authority backend '{label}' is not a subclass of CertificateAuthority"
        raise CAError(msg)

    missing = sorted(getattr(cls, "__abstractmethods__", ()))
    if missing:
        msg = f"Authority backend '{label}' does not implement: {', '.join(missing)}"
        raise CAError(msg)
