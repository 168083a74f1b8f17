"""Error taxonomy for the storage context.

Every error the HTTP layer reports derives from ``StorageError`` and names
its kind, which the API maps onto a status code.
"""


class StorageError(Exception):
    """Base class for expected storage failures."""

    kind = "storage_error"


class NotFoundError(StorageError):
    """A referenced system, terminal, recipe or location is not in the model."""

    kind = "not_found"


class ConflictError(StorageError):
    """Duplicate registration, absent container, or a second controller."""

    kind = "conflict"


class PreconditionFailedError(StorageError):
    """The operation needs a live controller binding and none exists."""

    kind = "precondition_failed"


class MalformedInputError(StorageError):
    """The request failed structural validation."""

    kind = "malformed_input"


class UnsupportedOperationError(StorageError):
    """The operation is part of the surface but is not executed by this service."""

    kind = "unsupported_operation"


class ProtocolError(StorageError):
    """The controller conversation broke down."""

    kind = "protocol_error"


class MalformedReplyError(ProtocolError):
    """A controller reply could not be decoded."""

    def __init__(self, message: str, reply: str | None = None):
        super().__init__(message)
        self.reply = reply


class ConnectionLostError(ProtocolError):
    """The controller went away (or stopped answering) before replying."""


class IndexingError(ProtocolError):
    """Refreshing one storage location failed; the location keeps its previous contents."""

    def __init__(self, location_id: str, message: str, slot: int | None = None):
        where = f"{location_id} slot {slot}" if slot is not None else location_id
        super().__init__(f"Indexing {where} failed: {message}")
        self.location_id = location_id
        self.slot = slot


class UnknownSystemError(NotFoundError):
    """A controller named a storage system that does not exist."""

    close_code = 4001
    close_reason = "invalid storage system name"


class DuplicateControllerError(ConflictError):
    """A controller tried to bind a storage system that already has one."""

    close_code = 4002
    close_reason = "storage system already has a controller"


class StoreCorruptedError(Exception):
    """The persisted system list could not be read back."""
