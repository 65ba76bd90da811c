"""Schema Model - declarative per-kind field trees.

A schema is a FHIR Questionnaire: a nested list of items, each carrying a
``linkId`` (the path), a value type, cardinality and optional validation
constraints. The same link ids are emitted by the forward mappers, read back
by the reverse mappers and checked by the validator, so a schema is the
contract binding the three.

Schemas are immutable and loaded once per record kind per process from the
JSON documents packaged under ``src/domain/questionnaires``.

Architecture:
    - Pure domain models (Pydantic V2, frozen)
    - Lookup is parent-scoped, mirroring ``src.domain.paths``
"""

import json
import logging
from functools import lru_cache
from importlib import resources
from typing import Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from src.domain.enums import ItemType, RecordKind
from src.domain.ports import SchemaError, UnsupportedRecordKindError

logger = logging.getLogger(__name__)

QUESTIONNAIRE_PACKAGE = "src.domain"
QUESTIONNAIRE_DIR = "questionnaires"


class _SchemaBase(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class ValidationHints(_SchemaBase):
    """Extra checks for a field.

    Parameters:
        pattern: ``email`` or ``phone``
        target_type: Resource type a reference must point at
    """
    pattern: Optional[str] = None
    target_type: Optional[str] = None


class SchemaNode(_SchemaBase):
    """One item of a schema.

    Invariant: only ``group`` items have child items.
    """
    link_id: str
    text: Optional[str] = None
    type: ItemType
    required: bool = False
    repeats: bool = False
    min_length: Optional[int] = Field(None, ge=0)
    max_length: Optional[int] = Field(None, ge=0)
    coding_system: Optional[str] = None
    validation: Optional[ValidationHints] = None
    items: tuple["SchemaNode", ...] = Field(default=(), alias="item")

    @model_validator(mode="after")
    def check_leaf_has_no_items(self) -> "SchemaNode":
        if self.items and self.type != ItemType.GROUP:
            raise ValueError(f"Item {self.link_id!r} of type {self.type.value} cannot have child items")
        return self

    @property
    def is_group(self) -> bool:
        return self.type == ItemType.GROUP

    @property
    def label(self) -> str:
        """Human-facing field name used in validation messages."""
        return self.text or self.link_id

    @property
    def pattern(self) -> Optional[str]:
        return self.validation.pattern if self.validation else None

    @property
    def target_type(self) -> Optional[str]:
        return self.validation.target_type if self.validation else None

    def find(self, path: str) -> Optional["SchemaNode"]:
        return next((item for item in self.items if item.link_id == path), None)

    def walk(self) -> Iterator["SchemaNode"]:
        yield self
        for item in self.items:
            yield from item.walk()


class SchemaModel(_SchemaBase):
    """A complete schema for one record kind."""
    url: Optional[str] = None
    name: Optional[str] = None
    title: Optional[str] = None
    subject_type: tuple[str, ...] = ()
    items: tuple[SchemaNode, ...] = Field(default=(), alias="item")

    @property
    def kind(self) -> Optional[RecordKind]:
        """Record kind named by the first ``subjectType``, if any."""
        if not self.subject_type:
            return None
        try:
            return RecordKind.parse(self.subject_type[0])
        except ValueError:
            return None

    def find(self, path: str, parent: Optional[SchemaNode] = None) -> Optional[SchemaNode]:
        """Find the schema node for ``path`` directly under ``parent`` (or the root)."""
        if parent is not None:
            return parent.find(path)
        return next((item for item in self.items if item.link_id == path), None)

    def walk(self) -> Iterator[SchemaNode]:
        for item in self.items:
            yield from item.walk()

    @classmethod
    def from_document(cls, document: dict) -> "SchemaModel":
        """Parse a Questionnaire document.

        Parameters:
            document: Questionnaire JSON (``resourceType`` optional)

        Returns:
            Immutable SchemaModel

        Raises:
            SchemaError: If the document is not a well-formed Questionnaire
        """
        if not isinstance(document, dict):
            raise SchemaError(f"Schema document must be a JSON object, got {type(document).__name__}")
        payload = {k: v for k, v in document.items() if k != "resourceType"}
        resource_type = document.get("resourceType", "Questionnaire")
        if resource_type != "Questionnaire":
            raise SchemaError(f"Expected resourceType Questionnaire, got {resource_type}")
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            raise SchemaError(
                f"Malformed schema document: {e.error_count()} error(s)",
                details={"errors": e.errors(include_url=False)},
            ) from e


def load_schema(kind) -> SchemaModel:
    """Load the packaged schema for a record kind (cached for the process).

    Parameters:
        kind: RecordKind, resource type or kind slug

    Raises:
        UnsupportedRecordKindError: If the kind is unknown
        SchemaError: If the packaged document is malformed
    """
    try:
        record_kind = RecordKind.parse(kind)
    except ValueError as e:
        raise UnsupportedRecordKindError(str(e), kind=str(kind)) from e
    return _load_packaged_schema(record_kind)


@lru_cache(maxsize=None)
def _load_packaged_schema(record_kind: RecordKind) -> SchemaModel:
    resource = resources.files(QUESTIONNAIRE_PACKAGE) / QUESTIONNAIRE_DIR / f"{record_kind.slug}.json"
    try:
        document = json.loads(resource.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise UnsupportedRecordKindError(
            f"No schema packaged for {record_kind.value}", kind=record_kind.value
        ) from e
    except json.JSONDecodeError as e:
        raise SchemaError(f"Invalid JSON in schema for {record_kind.value}: {str(e)}") from e

    schema = SchemaModel.from_document(document)
    logger.debug(f"Loaded schema {schema.name} with {sum(1 for _ in schema.walk())} items")
    return schema
