# Core infrastructure
from eduforge.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_user_id,
    set_request_id,
    set_user_id,
)
from eduforge.core.exceptions import StorageError
from eduforge.core.locks import KeyedLock
from eduforge.core.logging import configure_structlog, get_logger


__all__ = [
    "KeyedLock",
    "StorageError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_user_id",
    "set_request_id",
    "set_user_id",
]
