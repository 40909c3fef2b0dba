"""Exception hierarchy for fleetcert.

Each exception maps to one row of the error taxonomy:

- :class:`RequestValidationError` -- malformed boundary payloads.  Never
  retried; the caller must not redeliver them.
- :class:`CollaboratorError` -- a downstream service failed.  Propagated
  to the invocation host, which owns the retry policy.
- :class:`BatchProcessingError` -- a ready batch finished with isolated
  per-item failures.

Whitelist and revocation outcomes are *not* errors and have no
exception type.
"""

from __future__ import annotations


class FleetCertError(Exception):
    """Base class for all fleetcert errors."""


class RequestValidationError(FleetCertError):
    """Raised when an inbound payload fails boundary validation.

    Parameters
    ----------
    errors:
        One human-readable message per offending field.

    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        body = "; ".join(errors)
        super().__init__(f"Invalid payload: {body}")


class CollaboratorError(FleetCertError):
    """Raised when an external collaborator call fails.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    retryable:
        Whether the failure is transient and the operation may be retried.

    """

    def __init__(self, detail: str, *, retryable: bool = False) -> None:
        self.detail = detail
        self.retryable = retryable
        super().__init__(detail)


class ProvisioningTemplateNotFoundError(FleetCertError):
    """The device inherits no provisioning policy carrying a template."""

    code = "PROVISIONING_TEMPLATE_NOT_FOUND"

    def __init__(self, device_id: str) -> None:
        self.device_id = device_id
        super().__init__(f"{self.code}: no provisioning template for device '{device_id}'")


class RevocationListError(FleetCertError):
    """The fetched revocation list could not be parsed."""


class CertificateSubjectError(FleetCertError):
    """The certificate subject does not carry a usable device identity."""


class BatchProcessingError(FleetCertError):
    """A ready batch completed with one or more failed items.

    Raised only after every item has been attempted, so that the host
    redelivers the message.  Redelivery is safe because issuance is
    guarded by the renewal ledger.
    """

    def __init__(self, failures: list[tuple[str, str]]) -> None:
        self.failures = failures
        summary = ", ".join(f"{device}/{arn}" for device, arn in failures)
        super().__init__(f"{len(failures)} renewal item(s) failed: {summary}")
