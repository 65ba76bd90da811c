"""Form Session - caller-owned editing state for one record.

A FormSession holds the answer tree being edited, the id of the record it
came from and the last record the server returned. It replaces any
process-wide store: callers create one session per editing context and pass
it where it is needed.

Submission flow:
    validate -> reverse map -> attach record id -> save -> forward map the
    stored record into a fresh tree

Architecture:
    - Persistence is an injected ``SaveOperation``; the session never talks
      to the network itself
    - Success and failure are reported through ``Result``
    - The caller supplies the timeout for the whole save sequence
"""

import asyncio
import logging
from typing import Optional

from src.domain.answer_tree import AnswerTree
from src.domain.enums import RecordKind, ResponseStatus
from src.domain.guardrails import RetryPolicy, RetryResult, get_retry_error_message, retry
from src.domain.mappers import get_mapper
from src.domain.ports import PersistenceError, Result, SaveOperation, UnsupportedRecordKindError
from src.domain.records import DomainRecord
from src.domain.schema import SchemaModel, load_schema
from src.domain.validation import ValidationResult, validate

logger = logging.getLogger(__name__)

# Save failures reported through Result; anything else propagates
SAVE_FAILURES = (PersistenceError, ConnectionError, TimeoutError, asyncio.TimeoutError)


class FormSession:
    """Editing session for one record of one kind.

    Parameters:
        kind: Record kind being edited (RecordKind, resource type or slug)
        storage_save: Async ``save(record) -> record`` operation
        schema: Schema to validate against (defaults to the packaged one)
        policy: If given, ``storage_save`` is retried with this policy;
            leave unset when the storage adapter retries on its own

    Example Usage:
        ```python
        session = FormSession("person", adapter.save)
        session.load(await adapter.get(RecordKind.PERSON, "123"))
        ...  # renderer edits session.tree
        result = await session.submit(timeout=30)
        if result.is_failure():
            show(result.error_details.get("errors", result.error))
        ```
    """

    def __init__(
        self,
        kind,
        storage_save: SaveOperation,
        schema: Optional[SchemaModel] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        try:
            self.kind = RecordKind.parse(kind)
        except ValueError as e:
            raise UnsupportedRecordKindError(str(e), kind=str(kind)) from e
        self.schema = schema or load_schema(self.kind)
        self.mapper = get_mapper(self.kind, schema=self.schema)
        self.storage_save = storage_save
        self.policy = policy

        self.tree = AnswerTree(questionnaire=self.schema.url)
        self.record_id: Optional[str] = None
        self.last_saved: Optional[DomainRecord] = None

    def start_new(self) -> AnswerTree:
        """Reset to an empty tree for creating a new record."""
        self.tree = AnswerTree(status=ResponseStatus.IN_PROGRESS, questionnaire=self.schema.url)
        self.record_id = None
        self.last_saved = None
        return self.tree

    def load(self, record: DomainRecord) -> AnswerTree:
        """Derive the editing tree from an existing record.

        Raises:
            UnsupportedRecordKindError: If the record is of another kind
        """
        if record.kind != self.kind:
            raise UnsupportedRecordKindError(
                f"Session edits {self.kind.value}, got {record.kind.value}", kind=record.kind.value
            )
        self.tree = self.mapper.to_tree(record)
        self.record_id = record.id
        self.last_saved = record
        return self.tree

    def validate(self) -> ValidationResult:
        return validate(self.tree, self.schema)

    async def _save(self, record: DomainRecord) -> RetryResult:
        """Run the save, retried under ``policy`` when one is set.

        Failures of the save itself come back in the RetryResult, so a
        ``TimeoutError`` raised by storage is never mistaken for the
        session deadline.
        """
        if self.policy is not None:
            return await retry(lambda: self.storage_save(record), self.policy)
        try:
            saved = await self.storage_save(record)
        except SAVE_FAILURES as e:
            return RetryResult(success=False, attempts=1, error=e)
        return RetryResult(success=True, attempts=1, value=saved)

    def _failure(self, outcome: RetryResult) -> Result[DomainRecord]:
        error = outcome.error
        if not isinstance(error, SAVE_FAILURES):
            raise error
        max_attempts = self.policy.max_attempts if self.policy is not None else 1
        hint = get_retry_error_message(error, outcome.attempts, max_attempts)
        logger.error(
            f"Saving {self.kind.value} failed after {outcome.attempts} attempt(s): {type(error).__name__}: {error}",
            extra={"record_kind": self.kind.value, "record_id": self.record_id},
        )
        return Result.failure_result(
            f"{hint} ({error})",
            error_type=type(error).__name__,
            error_details={"status_code": getattr(error, "status_code", None), "attempts": outcome.attempts},
        )

    async def submit(self, timeout: Optional[float] = None) -> Result[DomainRecord]:
        """Validate, rebuild and save the record; refresh the tree from the stored copy.

        Parameters:
            timeout: Seconds allowed for the whole save sequence (None waits indefinitely)

        Returns:
            Result: the stored record on success. Failures carry
            ``error_type`` ``ValidationFailed`` (with ``errors``), ``TimeoutError``
            when the session deadline passes, or the class of the save failure
            with a human-readable message and ``status_code``/``attempts``

        Raises:
            Exception: Save errors that are not persistence, connection or
                timeout failures propagate unchanged
        """
        validation = self.validate()
        if not validation.is_valid:
            logger.info(
                f"Submit blocked by {len(validation.errors)} validation error(s)",
                extra={"record_kind": self.kind.value, "record_id": self.record_id},
            )
            return Result.failure_result(
                "Validation failed",
                error_type="ValidationFailed",
                error_details={"errors": validation.errors},
            )

        record = self.mapper.from_tree(self.tree).with_id(self.record_id)

        try:
            outcome = await asyncio.wait_for(self._save(record), timeout)
        except asyncio.TimeoutError:
            logger.error(
                f"Saving {self.kind.value} timed out after {timeout}s",
                extra={"record_kind": self.kind.value, "record_id": self.record_id},
            )
            return Result.failure_result(
                f"Save timed out after {timeout} seconds", error_type="TimeoutError"
            )

        if not outcome.success:
            return self._failure(outcome)

        saved = outcome.value
        self.record_id = saved.id or self.record_id
        self.last_saved = saved
        self.tree = self.mapper.to_tree(saved)
        logger.info(
            f"Saved {self.kind.value}/{self.record_id}",
            extra={"record_kind": self.kind.value, "record_id": self.record_id},
        )
        return Result.success_result(saved)
