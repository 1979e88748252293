"""Translate Cassandra driver failures into StorageError."""

from collections.abc import Iterator
from contextlib import contextmanager

import structlog
from cassandra import DriverException, OperationTimedOut
from cassandra.cluster import NoHostAvailable

from eduforge.core.exceptions import StorageError


logger = structlog.get_logger(__name__)

DRIVER_ERRORS = (DriverException, OperationTimedOut, NoHostAvailable)


@contextmanager
def storage_errors(operation: str) -> Iterator[None]:
    """Re-raise driver failures inside the block as StorageError."""
    try:
        yield
    except DRIVER_ERRORS as e:
        logger.warning(
            "cassandra_operation_failed",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise StorageError(f"{operation} failed: {e}", operation) from e
