"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so callers can inspect it without
    # parsing str(exception). Never raise this directly - use a specific subclass.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when a catalog record is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when a record fails schema validation before a write.

    Reads never raise this: malformed persisted records go through the
    decode policy in the consistency sweep instead.
    """

    def __init__(self, entity_type: str, entity_id: Any, detail: str) -> None:
        super().__init__(f"Invalid {entity_type} {entity_id}: {detail}")
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.detail = detail


class ConfigurationException(DomainException):
    """Raised when required configuration is missing or invalid."""

    pass


class ScanInProgressException(DomainException):
    """Raised when a scan is requested while another one is running."""

    def __init__(self, message: str = "A library scan is already running") -> None:
        super().__init__(message)


class ScanCancelledException(DomainException):
    """Raised at a cancellation checkpoint once the scan token is cancelled.

    Hey future me - this is flow control, not a failure! The scanner catches it,
    skips the sweep (a partial seen-set would delete live tracks) and marks the
    status as cancelled. Everything written before the checkpoint is consistent.
    """

    def __init__(self, message: str = "Operation cancelled") -> None:
        super().__init__(message)
