"""Database subsystem for fleetcert.

Public API::

    from fleetcert.db import init_database
"""

from fleetcert.db.init import init_database

__all__ = [
    "init_database",
]
