"""Logging subsystem for fleetcert.

Public API::

    from fleetcert.logging import configure_logging, invocation_context

    configure_logging(settings.logging)

    with invocation_context(device_id="dev-1"):
        ...
"""

from fleetcert.logging.setup import configure_logging, invocation_context

__all__ = ["configure_logging", "invocation_context"]
