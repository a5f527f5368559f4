class ITPMError(Exception):
    """Base exception for all itpm errors."""
    pass

class RecoverableError(ITPMError):
    """An error that can be recovered from without data loss."""
    pass

class FatalError(ITPMError):
    """An error that requires application termination or major intervention."""
    pass

class ValidationError(RecoverableError):
    """A required field (name, title or task dates) is missing."""
    pass

class NotFoundError(RecoverableError):
    """The operation targets an unknown project (or template)."""
    pass

class StaleReferenceError(RecoverableError):
    """A view-originated action references an entity that no longer exists.

    Views answer this by reverting the visual move, never by failing.
    """

    def __init__(self, message: str, key: str = None):
        super().__init__(message)
        self.key = key

class SerializationError(RecoverableError):
    """Persisted or imported data is not parsable or has the wrong shape."""
    pass

class FileOperationError(RecoverableError):
    """File operation failed but can be retried."""
    pass
