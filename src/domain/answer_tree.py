"""Answer Tree Models.

The answer tree is the generic side of the form bridge: a nested structure of
group nodes (children, no values) and leaf nodes (typed values, no children)
produced and consumed by the form renderer. Its wire format is a FHIR
QuestionnaireResponse.

Invariants:
    - Leaves have no children; groups have no values
    - Repeatable groups are sibling nodes sharing one ``link_id``
    - Absent optional fields produce no node (sparse encoding); an
      "answered but empty" field is a single empty ``valueString``
    - A TypedValue populates exactly one variant

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Trees are mutable (the renderer edits them in place); values are frozen
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Any, Iterator, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from src.domain.enums import ResponseStatus
from src.domain.ports import TreeFormatError
from src.domain.records import Coding, FHIRDate, FHIRDateTime, Reference, parse_fhir_date
from src.domain.utils import prune_empty

RESOURCE_TYPE = "QuestionnaireResponse"


class NodeKind(str, Enum):
    GROUP = "group"
    LEAF = "leaf"


class Quantity(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: Optional[float] = None
    unit: Optional[str] = None


_VARIANTS = (
    "value_string",
    "value_boolean",
    "value_integer",
    "value_decimal",
    "value_date",
    "value_date_time",
    "value_time",
    "value_uri",
    "value_coding",
    "value_reference",
    "value_quantity",
)


class TypedValue(BaseModel):
    """A single answer value: exactly one ``value[x]`` variant is populated."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    value_string: Optional[str] = None
    value_boolean: Optional[bool] = None
    value_integer: Optional[int] = None
    value_decimal: Optional[float] = None
    value_date: Optional[FHIRDate] = None
    value_date_time: Optional[FHIRDateTime] = None
    value_time: Optional[time] = None
    value_uri: Optional[str] = None
    value_coding: Optional[Coding] = None
    value_reference: Optional[Reference] = None
    value_quantity: Optional[Quantity] = None

    @model_validator(mode="after")
    def check_single_variant(self) -> "TypedValue":
        populated = [name for name in _VARIANTS if getattr(self, name) is not None]
        if len(populated) != 1:
            raise ValueError(
                f"An answer value must populate exactly one variant, got {len(populated)}: {populated}"
            )
        return self

    @field_validator("value_date", mode="before")
    @classmethod
    def parse_date(cls, v):
        return None if v is None else parse_fhir_date(v)

    @field_validator("value_date_time", mode="before")
    @classmethod
    def parse_date_time(cls, v):
        return None if v is None else parse_fhir_date(v, allow_time=True)

    @classmethod
    def wrap(cls, value: Any) -> "TypedValue":
        """Wrap a Python value in the variant matching its type.

        ``bool`` is tested before ``int`` and ``datetime`` before ``date``
        since each is a subclass of the other. URIs have no Python type of
        their own; build them with ``TypedValue(value_uri=...)``.

        Raises:
            TypeError: If the value has no matching variant
        """
        if isinstance(value, bool):
            return cls(value_boolean=value)
        if isinstance(value, int):
            return cls(value_integer=value)
        if isinstance(value, float):
            return cls(value_decimal=value)
        if isinstance(value, datetime):
            return cls(value_date_time=value)
        if isinstance(value, date):
            return cls(value_date=value)
        if isinstance(value, time):
            return cls(value_time=value)
        if isinstance(value, str):
            return cls(value_string=value)
        if isinstance(value, Coding):
            return cls(value_coding=value)
        if isinstance(value, Reference):
            return cls(value_reference=value)
        if isinstance(value, Quantity):
            return cls(value_quantity=value)
        raise TypeError(f"No answer variant for {type(value).__name__}")

    @property
    def variant(self) -> str:
        """Field name of the populated variant, e.g. ``value_string``."""
        return next(name for name in _VARIANTS if getattr(self, name) is not None)

    @property
    def value(self) -> Any:
        return getattr(self, self.variant)

    @property
    def scalar(self) -> Any:
        """Primitive view of the value: a coding's code, a reference string, a quantity's number."""
        if self.value_coding is not None:
            return self.value_coding.code
        if self.value_reference is not None:
            return self.value_reference.reference
        if self.value_quantity is not None:
            return self.value_quantity.value
        return self.value

    def is_blank(self) -> bool:
        scalar = self.scalar
        return scalar is None or (isinstance(scalar, str) and not scalar.strip())


class AnswerNode(BaseModel):
    """One node of the answer tree, addressed by ``link_id`` within its parent."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    link_id: str
    text: Optional[str] = None
    answers: list[TypedValue] = Field(default_factory=list, alias="answer")
    children: list["AnswerNode"] = Field(default_factory=list, alias="item")

    @model_validator(mode="after")
    def check_shape(self) -> "AnswerNode":
        if self.answers and self.children:
            raise ValueError(f"Node {self.link_id!r} carries both answers and child items")
        return self

    @classmethod
    def leaf(cls, link_id: str, *values: Any, text: Optional[str] = None) -> "AnswerNode":
        """Build a leaf; plain Python values are wrapped with ``TypedValue.wrap``."""
        answers = [v if isinstance(v, TypedValue) else TypedValue.wrap(v) for v in values]
        return cls(link_id=link_id, text=text, answers=answers)

    @classmethod
    def group(cls, link_id: str, children: list["AnswerNode"], text: Optional[str] = None) -> "AnswerNode":
        return cls(link_id=link_id, text=text, children=list(children))

    @property
    def kind(self) -> NodeKind:
        return NodeKind.GROUP if self.children else NodeKind.LEAF

    def has_value(self) -> bool:
        """True when this leaf, or any leaf below this group, holds a non-blank value."""
        if self.children:
            return any(child.has_value() for child in self.children)
        return any(not answer.is_blank() for answer in self.answers)

    def walk(self) -> Iterator["AnswerNode"]:
        yield self
        for child in self.children:
            yield from child.walk()


class AnswerTree(BaseModel):
    """Root of an answer tree (FHIR QuestionnaireResponse).

    Example:
        ```python
        tree = AnswerTree.from_wire(payload)
        for node in resolve(tree, "telecom"):
            ...
        payload = tree.to_wire()
        ```
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    status: ResponseStatus = ResponseStatus.IN_PROGRESS
    questionnaire: Optional[str] = None
    children: list[AnswerNode] = Field(default_factory=list, alias="item")

    def walk(self) -> Iterator[AnswerNode]:
        """Depth-first, pre-order traversal in tree order."""
        for child in self.children:
            yield from child.walk()

    def is_empty(self) -> bool:
        return not self.children

    def to_wire(self) -> dict:
        payload = self.model_dump(by_alias=True, exclude_none=True, mode="json")
        return {"resourceType": RESOURCE_TYPE, **prune_empty(payload)}

    @classmethod
    def from_wire(cls, data: dict) -> "AnswerTree":
        """Parse a QuestionnaireResponse document.

        Raises:
            TreeFormatError: If the document is not a well-formed answer tree
        """
        if not isinstance(data, dict):
            raise TreeFormatError(f"Answer tree must be a JSON object, got {type(data).__name__}")
        payload = dict(data)
        resource_type = payload.pop("resourceType", RESOURCE_TYPE)
        if resource_type != RESOURCE_TYPE:
            raise TreeFormatError(f"Expected resourceType {RESOURCE_TYPE}, got {resource_type}")
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as e:
            raise TreeFormatError(
                f"Malformed answer tree: {e.error_count()} error(s)",
                details={"errors": e.errors(include_url=False)},
            ) from e
