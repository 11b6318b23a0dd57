"""Storage exceptions. API handlers map these onto HTTP status codes."""


class StorageError(Exception):
    """Base class for every error raised by the storage engine."""


class NotFound(StorageError, LookupError):
    """A requested id is absent from its collection."""


class OwnerNotFound(NotFound):
    """A project id does not resolve to a storage root."""


class StorageIOError(StorageError):
    """A metadata collection could not be read or written."""


class EntityValidationError(StorageError, ValueError):
    """A malformed entity-type key or an incomplete filename context."""


class FilenameConflict(StorageError):
    """Another record of the same collection already owns the derived filename."""
