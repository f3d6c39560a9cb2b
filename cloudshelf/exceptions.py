# exceptions.py


class CloudshelfError(Exception):
    """Base class for every error raised by the hierarchy manager."""
    pass


class ConfigurationError(CloudshelfError):
    """Missing or invalid store credentials or bucket. Raised before any operation runs."""
    pass


class NotInitializedError(CloudshelfError):
    """An operation was attempted without a valid store handle."""
    pass


class StoreIOError(CloudshelfError):
    """A list, put, copy or delete call against the object store failed."""

    def __init__(self, message: str, operation: str = None, key: str = None, cause: Exception = None):
        super().__init__(message)
        self.operation = operation
        self.key = key
        self.cause = cause


class PartialFailure(CloudshelfError):
    """
    A multi-step or multi-item operation succeeded for some items and failed for others.
    Nothing is rolled back; `report` says which items went where.
    """

    def __init__(self, message: str, report):
        super().__init__(message)
        self.report = report
