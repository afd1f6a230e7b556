"""Exceptions shared by the storage and service layers."""


class StorageError(Exception):
    """
    The storage medium failed to read or write.

    Wraps the underlying OSError, JSON decoding error or SQLAlchemyError.
    Never converted into an empty result.
    """

    def __init__(self, operation: str, cause: BaseException | None = None):
        self.operation = operation
        self.cause = cause
        message = f"Storage failure during {operation}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
