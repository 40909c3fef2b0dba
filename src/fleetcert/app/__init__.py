"""Application wiring for fleetcert.

Public API::

    from fleetcert.app import Container
"""

from fleetcert.app.context import Container

__all__ = ["Container"]
