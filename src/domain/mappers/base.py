"""Record Mapper base class and shared emit/read helpers.

A mapper translates one record kind between its typed DomainRecord and the
generic answer tree. ``to_tree`` (forward) and ``from_tree`` (reverse) are
strict inverses over the fields the schema represents.

Both directions are total: malformed input degrades to omission and is
logged at DEBUG, never raised. Reverse lookups are always scoped to an
explicit parent (the tree root or one group node), see ``src.domain.paths``.

Architecture:
    - Pure domain logic: no I/O, no shared mutable state
    - Inputs are never mutated; every call returns new structures
    - Emit helpers return ``None`` for absent values so callers can build
      sparse child lists and let ``group`` drop the gaps
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, ClassVar, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.domain.answer_tree import AnswerNode, AnswerTree, TypedValue
from src.domain.enums import CodedEnum, RecordKind, ResponseStatus
from src.domain.paths import Scope, resolve, resolve_scalar
from src.domain.records import Coding, DomainRecord, FHIRDateTime, Reference
from src.domain.schema import SchemaModel, SchemaNode, load_schema
from src.domain.utils import non_blank

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)
E = TypeVar("E", bound=CodedEnum)


# ============================================================================
# Forward helpers (value -> node)
# ============================================================================

def string_leaf(path: str, value: Optional[str]) -> Optional[AnswerNode]:
    text = non_blank(value)
    if text is None:
        return None
    return AnswerNode.leaf(path, TypedValue(value_string=text))


def strings_leaf(path: str, values: Iterable[str]) -> Optional[AnswerNode]:
    """One leaf holding every non-blank value as a separate answer, in order."""
    answers = [TypedValue(value_string=text) for text in map(non_blank, values) if text is not None]
    if not answers:
        return None
    return AnswerNode.leaf(path, *answers)


def boolean_leaf(path: str, value: Optional[bool]) -> Optional[AnswerNode]:
    if value is None:
        return None
    return AnswerNode.leaf(path, TypedValue(value_boolean=value))


def integer_leaf(path: str, value: Optional[int]) -> Optional[AnswerNode]:
    if value is None:
        return None
    return AnswerNode.leaf(path, TypedValue(value_integer=value))


def date_leaf(path: str, value: Optional[FHIRDateTime]) -> Optional[AnswerNode]:
    """Date-times go to ``valueDateTime``; dates, full or partial, to ``valueDate``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return AnswerNode.leaf(path, TypedValue(value_date_time=value))
    return AnswerNode.leaf(path, TypedValue(value_date=value))


def coding_leaf(path: str, member: Optional[CodedEnum]) -> Optional[AnswerNode]:
    """Emit an enumerated code with its canonical system and derived display."""
    if member is None:
        return None
    coding = Coding(system=member.system_uri(), code=member.value, display=member.display)
    return AnswerNode.leaf(path, TypedValue(value_coding=coding))


def reference_leaf(path: str, reference: Optional[Reference]) -> Optional[AnswerNode]:
    return references_leaf(path, [reference] if reference is not None else [])


def references_leaf(path: str, references: Iterable[Reference]) -> Optional[AnswerNode]:
    """Only ``reference`` is carried; the target's contents are never embedded."""
    answers = [
        TypedValue(value_reference=Reference(reference=ref.reference))
        for ref in references
        if non_blank(ref.reference)
    ]
    if not answers:
        return None
    return AnswerNode.leaf(path, *answers)


def group(path: str, children: Iterable[Optional[AnswerNode]]) -> Optional[AnswerNode]:
    """Build a group from the emitted children; a group with none is omitted."""
    present = [child for child in children if child is not None]
    if not present:
        return None
    return AnswerNode.group(path, present)


def compact(nodes: Iterable[Optional[AnswerNode]]) -> list[AnswerNode]:
    return [node for node in nodes if node is not None]


# ============================================================================
# Reverse helpers (scope + path -> value)
# ============================================================================

def _answers(scope: Scope, path: str) -> list[TypedValue]:
    """Every answer of every same-path leaf in scope, in tree order."""
    return [answer for node in resolve(scope, path) for answer in node.answers]


def read_string(scope: Scope, path: str) -> Optional[str]:
    node = resolve_scalar(scope, path)
    if node is None:
        return None
    for answer in node.answers:
        text = non_blank(answer.value_string)
        if text is not None:
            return text
    return None


def read_strings(scope: Scope, path: str) -> list[str]:
    texts = (non_blank(answer.value_string) for answer in _answers(scope, path))
    return [text for text in texts if text is not None]


def read_boolean(scope: Scope, path: str) -> Optional[bool]:
    node = resolve_scalar(scope, path)
    if node is None:
        return None
    return next((a.value_boolean for a in node.answers if a.value_boolean is not None), None)


def read_integer(scope: Scope, path: str) -> Optional[int]:
    node = resolve_scalar(scope, path)
    if node is None:
        return None
    return next((a.value_integer for a in node.answers if a.value_integer is not None), None)


def read_date(scope: Scope, path: str, with_time: bool = True) -> Optional[FHIRDateTime]:
    """First date answer; ``valueDateTime`` answers are skipped unless ``with_time``."""
    node = resolve_scalar(scope, path)
    if node is None:
        return None
    for answer in node.answers:
        if answer.value_date is not None:
            return answer.value_date
        if with_time and answer.value_date_time is not None:
            return answer.value_date_time
    return None


def read_code(scope: Scope, path: str, enum_type: Type[E]) -> Optional[E]:
    """Rebuild an enumeration from a coding's ``code`` (or a plain string code).

    Unknown codes are dropped rather than carried through.
    """
    node = resolve_scalar(scope, path)
    if node is None:
        return None
    for answer in node.answers:
        if answer.value_coding is not None:
            raw = answer.value_coding.code
        elif answer.value_string is not None:
            raw = answer.value_string
        else:
            continue
        member = enum_type.from_code(raw)
        if member is not None:
            return member
        logger.debug(f"Dropping unknown {enum_type.__name__} code {raw!r} at {path}")
    return None


def _as_reference(answer: TypedValue) -> Optional[Reference]:
    if answer.value_reference is not None:
        raw = answer.value_reference.reference
    elif answer.value_string is not None:
        raw = answer.value_string
    else:
        return None
    text = non_blank(raw)
    return Reference(reference=text) if text else None


def read_reference(scope: Scope, path: str) -> Optional[Reference]:
    node = resolve_scalar(scope, path)
    if node is None:
        return None
    return next((ref for ref in map(_as_reference, node.answers) if ref is not None), None)


def read_references(scope: Scope, path: str) -> list[Reference]:
    return [ref for ref in map(_as_reference, _answers(scope, path)) if ref is not None]


def safe_build(model: Type[M], **fields: Any) -> Optional[M]:
    """Build ``model`` from the fields that are present.

    Returns None when no field is present or the combination is rejected
    by the model (e.g. a period ending before it starts).
    """
    present = {name: value for name, value in fields.items() if value not in (None, [])}
    if not present:
        return None
    try:
        return model(**present)
    except PydanticValidationError as e:
        logger.debug(f"Omitting {model.__name__}: {e.error_count()} validation error(s)")
        return None


# ============================================================================
# Labels
# ============================================================================

def apply_labels(nodes: list[AnswerNode], items: Iterable[SchemaNode]) -> list[AnswerNode]:
    """Copy schema ``text`` onto the emitted nodes, matching paths per scope."""
    by_path = {item.link_id: item for item in items}
    labelled = []
    for node in nodes:
        item = by_path.get(node.link_id)
        if item is None:
            labelled.append(node)
            continue
        update: dict[str, Any] = {"text": item.text}
        if node.children:
            update["children"] = apply_labels(node.children, item.items)
        labelled.append(node.model_copy(update=update))
    return labelled


# ============================================================================
# Mapper
# ============================================================================

class RecordMapper(ABC):
    """Bidirectional mapping for one record kind.

    Subclasses implement ``emit`` (record -> top-level nodes) and ``read``
    (tree -> record fields); this class wraps both with the totality,
    labelling and logging shared by every kind.

    Example:
        ```python
        mapper = get_mapper(RecordKind.PERSON)
        tree = mapper.to_tree(person)
        ...  # renderer edits tree
        person = mapper.from_tree(tree)
        ```
    """

    kind: ClassVar[RecordKind]
    record_type: ClassVar[Type[DomainRecord]]

    def __init__(self, schema: Optional[SchemaModel] = None):
        self._schema = schema

    @property
    def schema(self) -> SchemaModel:
        if self._schema is None:
            self._schema = load_schema(self.kind)
        return self._schema

    @abstractmethod
    def emit(self, record: DomainRecord) -> list[Optional[AnswerNode]]:
        """Top-level nodes for ``record``; ``None`` entries are dropped."""

    @abstractmethod
    def read(self, tree: AnswerTree) -> dict[str, Any]:
        """Record fields rebuilt from the top-level scope of ``tree``."""

    def to_tree(self, record: DomainRecord) -> AnswerTree:
        """Forward map ``record`` into a fresh in-progress answer tree."""
        if not isinstance(record, self.record_type):
            logger.debug(
                f"{type(self).__name__} cannot map {type(record).__name__}; returning an empty tree"
            )
            return AnswerTree(status=ResponseStatus.IN_PROGRESS, questionnaire=self.schema.url)

        children = apply_labels(compact(self.emit(record)), self.schema.items)
        tree = AnswerTree(
            status=ResponseStatus.IN_PROGRESS,
            questionnaire=self.schema.url,
            children=children,
        )
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Mapped {self.kind.value} to answer tree: {tree.to_wire()}")
        return tree

    def from_tree(self, tree: AnswerTree) -> DomainRecord:
        """Reverse map ``tree`` into a new record (without ``id``)."""
        fields = {name: value for name, value in self.read(tree).items() if value not in (None, [])}
        try:
            record = self.record_type(**fields)
        except PydanticValidationError as e:
            logger.debug(f"Could not assemble {self.kind.value} from tree: {e.error_count()} error(s)")
            return self.record_type()
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Mapped answer tree to {self.kind.value}: {record.to_fhir()}")
        return record
