"""Domain Ports - Abstract Contracts for Record Persistence.

This module defines the Port interfaces (abstract contracts) that Adapters must
implement, the Result type used to report success or failure without
exceptions, and the exception hierarchy shared by the domain and adapters.

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Adapters (FHIR REST, in-memory fakes in tests) implement these ports
    - The mapping engine only ever sees an injected ``SaveOperation``
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Generic, Optional, TypeVar, Union

if TYPE_CHECKING:
    from src.domain.records import DomainRecord

# Type variable for Result generic
T = TypeVar('T')


# ============================================================================
# Result Type for Success/Failure Communication
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Result type for communicating success or failure without exceptions.

    Attributes:
        success: True if the operation succeeded, False otherwise
        value: The successful result value (only present if success=True)
        error: Error information (only present if success=False)
        error_type: Type of error (ValidationFailed, PersistenceError, etc.)
        error_details: Additional error context (validation errors, attempts, etc.)

    Example:
        ```python
        result = await session.submit()
        if result.is_success():
            show(result.value)
        else:
            show_errors(result.error_details["errors"])
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Create a successful result.

        Parameters:
            value: The successful result value

        Returns:
            Result: Success result with the value
        """
        return cls(success=True, value=value)

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Create a failure result.

        Parameters:
            error: Error message or exception
            error_type: Type of error (defaults to the exception class name)
            error_details: Additional context

        Returns:
            Result: Failure result with error information
        """
        error_message = str(error) if isinstance(error, Exception) else error
        error_type_name = error_type or (type(error).__name__ if isinstance(error, Exception) else "UnknownError")

        return cls(
            success=False,
            value=None,
            error=error_message,
            error_type=error_type_name,
            error_details=error_details or {}
        )

    def is_success(self) -> bool:
        """Check if result is successful."""
        return self.success

    def is_failure(self) -> bool:
        """Check if result is a failure."""
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class MappingError(Exception):
    """Base exception for malformed documents at the engine boundary.

    Mappers and the validator never raise; these are raised only when a wire
    document (answer tree, schema) cannot be parsed at all.

    Attributes:
        details: Additional error details (e.g. pydantic error list)
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.details = details or {}


class TreeFormatError(MappingError):
    """Raised when an answer tree document is not a well-formed QuestionnaireResponse."""
    pass


class SchemaError(MappingError):
    """Raised when a schema document is not a well-formed Questionnaire."""
    pass


class UnsupportedRecordKindError(MappingError):
    """Raised when no mapper or schema is registered for a record kind.

    Attributes:
        kind: The record kind that was requested
    """

    def __init__(self, message: str, kind: Optional[str] = None):
        super().__init__(message)
        self.kind = kind


class PersistenceError(Exception):
    """Raised when the record store rejects or fails a request.

    Attributes:
        status_code: HTTP status of the failed response (None for transport faults)
        body: Response body text (may be truncated)
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class NetworkError(PersistenceError):
    """Raised when the request never produced a response (DNS, refused connection, timeout)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=None)


# ============================================================================
# Persistence Port
# ============================================================================

SaveOperation = Callable[['DomainRecord'], Awaitable['DomainRecord']]


class RecordStoragePort(ABC):
    """Abstract contract for record persistence adapters.

    Key Principles:
        - Async: every call may suspend on network I/O
        - Opaque retries: ``save`` may retry internally, callers see one operation
        - Typed: adapters accept and return DomainRecord instances, never raw JSON

    Example Usage:
        ```python
        storage = FHIRRestAdapter(server_config, retry_policy)
        person = await storage.get(RecordKind.PERSON, "123")
        saved = await storage.save(person)
        ```
    """

    @abstractmethod
    async def get(self, kind, record_id: str) -> 'DomainRecord':
        """Fetch a record by kind and id.

        Raises:
            PersistenceError: If the record cannot be fetched
        """
        pass

    @abstractmethod
    async def create(self, record: 'DomainRecord') -> 'DomainRecord':
        """Create a new record; the returned record carries the server-assigned id."""
        pass

    @abstractmethod
    async def update(self, record: 'DomainRecord') -> 'DomainRecord':
        """Replace an existing record (``record.id`` must be set)."""
        pass

    async def save(self, record: 'DomainRecord') -> 'DomainRecord':
        """Create or update depending on whether the record has an id.

        This is the ``SaveOperation`` handed to editing sessions.
        """
        if record.id:
            return await self.update(record)
        return await self.create(record)
