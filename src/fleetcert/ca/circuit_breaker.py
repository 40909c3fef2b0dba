"""Circuit breaker for certificate authority calls.

Wraps a :class:`CertificateAuthority` to protect against cascading
failures when the authority is unreachable or overloaded.  Implements
the standard closed/open/half-open state machine.

States:
    **closed**: requests pass through normally.  Failures are counted.
    **open**: requests fail immediately with ``CAError``.
    **half-open**: one probe request is allowed through; success resets
    to closed, failure reopens.

Usage::

    from fleetcert.ca.circuit_breaker import CircuitBreakerAuthority

    protected = CircuitBreakerAuthority(real_authority, settings)
    protected.describe_certificate("abc")
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import TYPE_CHECKING, Any

from fleetcert.ca.base import CAError, CertificateAuthority

if TYPE_CHECKING:
    from collections.abc import Callable

    from fleetcert.ca.base import CertificateDescription, IssuedCertificate
    from fleetcert.config.settings import CASettings
    from fleetcert.core.types import CertificateStatus
    from fleetcert.models.page import Page

log = logging.getLogger(__name__)


class _State(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerAuthority(CertificateAuthority):
    """Transparent circuit breaker wrapper around a real authority.

    Parameters
    ----------
    authority:
        The real authority backend to protect.
    ca_settings:
        CA configuration (passed to the base class).
    failure_threshold:
        Number of consecutive failures before opening the circuit.
    recovery_timeout:
        Seconds to wait in the open state before allowing a probe.
    half_open_max_calls:
        Maximum concurrent probe calls in half-open state.

    """

    def __init__(
        self,
        authority: CertificateAuthority,
        ca_settings: CASettings,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max_calls: int = 1,
    ) -> None:
        super().__init__(ca_settings)
        self._authority = authority
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._half_open_max_calls = half_open_max_calls

        self._lock = threading.Lock()
        self._state = _State.CLOSED
        self._failure_count = 0
        self._last_failure_time: float = 0.0
        self._half_open_calls = 0

    @property
    def state(self) -> str:
        """Current circuit state as a string."""
        with self._lock:
            return self._state.value

    def _call(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
        self._check_state()
        try:
            result = fn(*args, **kwargs)
        except CAError as exc:
            self._on_failure(exc)
            raise
        except Exception as exc:
            self._on_failure(exc)
            raise CAError(str(exc), retryable=True) from exc
        self._on_success()
        return result

    # -- delegated operations ------------------------------------------------

    def issue_certificate(self, *, set_active: bool = True) -> IssuedCertificate:
        return self._call(self._authority.issue_certificate, set_active=set_active)

    def sign_csr(self, csr_pem: str, *, set_active: bool = True) -> IssuedCertificate:
        return self._call(self._authority.sign_csr, csr_pem, set_active=set_active)

    def register_certificate(
        self,
        certificate_pem: str,
        *,
        ca_certificate_pem: str | None = None,
        set_active: bool = True,
    ) -> IssuedCertificate:
        return self._call(
            self._authority.register_certificate,
            certificate_pem,
            ca_certificate_pem=ca_certificate_pem,
            set_active=set_active,
        )

    def describe_certificate(self, certificate_id: str) -> CertificateDescription:
        return self._call(self._authority.describe_certificate, certificate_id)

    def update_certificate_status(
        self,
        certificate_id: str,
        status: CertificateStatus,
    ) -> None:
        self._call(self._authority.update_certificate_status, certificate_id, status)

    def revoke_certificate(self, certificate_id: str) -> None:
        self._call(self._authority.revoke_certificate, certificate_id)

    def delete_certificate(self, certificate_id: str) -> None:
        self._call(self._authority.delete_certificate, certificate_id)

    def list_attached_policies(self, certificate_arn: str) -> list[str]:
        return self._call(self._authority.list_attached_policies, certificate_arn)

    def attach_policy(self, certificate_arn: str, policy_name: str) -> None:
        self._call(self._authority.attach_policy, certificate_arn, policy_name)

    def detach_policy(self, certificate_arn: str, policy_name: str) -> None:
        self._call(self._authority.detach_policy, certificate_arn, policy_name)

    def attach_to_device(self, certificate_arn: str, device_id: str) -> None:
        self._call(self._authority.attach_to_device, certificate_arn, device_id)

    def detach_from_device(self, certificate_arn: str, device_id: str) -> None:
        self._call(self._authority.detach_from_device, certificate_arn, device_id)

    def list_devices_for_certificate(
        self,
        certificate_arn: str,
        *,
        page_token: str | None = None,
        max_results: int | None = None,
    ) -> Page[str]:
        return self._call(
            self._authority.list_devices_for_certificate,
            certificate_arn,
            page_token=page_token,
            max_results=max_results,
        )

    def startup_check(self) -> None:
        self._authority.startup_check()

    # -- state machine -------------------------------------------------------

    def _check_state(self) -> None:
        """Raise immediately if the circuit is open (fail-fast)."""
        with self._lock:
            if self._state == _State.CLOSED:
                return

            if self._state == _State.OPEN:
                elapsed = time.monotonic() - self._last_failure_time
                if elapsed >= self._recovery_timeout:
                    self._state = _State.HALF_OPEN
                    self._half_open_calls = 0
                    log.info(
                        "CA circuit breaker: open -> half_open (recovery timeout %.1fs elapsed)",
                        elapsed,
                    )
                else:
                    msg = (
                        "Certificate authority circuit breaker is open, "
                        f"failing fast (retry in {self._recovery_timeout - elapsed:.0f}s)"
                    )
                    raise CAError(msg, retryable=True)

            if self._state == _State.HALF_OPEN:
                if self._half_open_calls >= self._half_open_max_calls:
                    msg = (
                        "Certificate authority circuit breaker is half-open; "
                        "probe in progress, rejecting additional calls"
                    )
                    raise CAError(msg, retryable=True)
                self._half_open_calls += 1

    def _on_success(self) -> None:
        with self._lock:
            if self._state == _State.HALF_OPEN:
                log.info("CA circuit breaker: half_open -> closed (probe succeeded)")
            self._state = _State.CLOSED
            self._failure_count = 0
            self._half_open_calls = 0

    def _on_failure(self, exc: Exception) -> None:
        with self._lock:
            if self._state == _State.HALF_OPEN:
                self._state = _State.OPEN
                self._last_failure_time = time.monotonic()
                self._half_open_calls = 0
                log.warning(
                    "CA circuit breaker: half_open -> open (probe failed: %s)",
                    exc,
                )
                return

            # Only retryable errors count toward the threshold
            if isinstance(exc, CAError) and not exc.retryable:
                return

            self._failure_count += 1
            if self._failure_count >= self._failure_threshold:
                self._state = _State.OPEN
                self._last_failure_time = time.monotonic()
                log.warning(
                    "CA circuit breaker: closed -> open (threshold %d reached: %s)",
                    self._failure_threshold,
                    exc,
                )
