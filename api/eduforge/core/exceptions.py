"""Errors shared across domains."""


class StorageError(Exception):
    """A store could not complete a read or write.

    Repositories wrap driver failures in this so services can decide whether
    to retry without depending on a particular driver.
    """

    def __init__(self, message: str, operation: str | None = None):
        self.message = message
        self.operation = operation
        super().__init__(message)
