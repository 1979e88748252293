"""Cassandra connection, schema bootstrap and driver error translation.

The connection module needs the optional cassandra-asyncio-driver, so it is
imported on demand by the application factory rather than from here.
"""

from eduforge.core.database.errors import DRIVER_ERRORS, storage_errors


__all__ = ["DRIVER_ERRORS", "storage_errors"]
