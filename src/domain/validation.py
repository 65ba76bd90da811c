"""Schema-driven validation of answer trees.

The validator works purely on the generic tree: it never looks at domain
records. For every node it resolves the matching SchemaNode scoped to the
parent schema node and applies, in order:

1. Required presence (absent or blank value fails)
2. Length bounds, for string values
3. Pattern checks: email, phone, http(s) URL and ``Kind/id`` references

Length and pattern checks are independent, so one value may produce an error
from each. Errors are emitted in tree traversal order; required schema
children with no node in a scope are reported after that scope's nodes, in
schema order. Validation is deterministic and never raises.

Security Impact:
    - Patterns are anchored and linear; no user-controlled regex is compiled
"""

import re
from typing import Any, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from src.domain.answer_tree import AnswerNode, AnswerTree, TypedValue
from src.domain.enums import ItemType, Severity
from src.domain.schema import SchemaModel, SchemaNode

FORM_FIELD = "form"
EMPTY_FORM_MESSAGE = "Form has no data to validate"

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")
PHONE_SEPARATORS = re.compile(r"[\s\-()]")
URL_PATTERN = re.compile(r"^https?://.+", re.IGNORECASE)


class ValidationError(BaseModel):
    """One validation finding.

    Parameters:
        field: Human-facing field label (schema ``text``, else the path)
        path: Link id of the offending node (``form`` for whole-form errors)
        message: Human-readable message starting with the label
        severity: ``error`` blocks submission; ``warning`` is informational
    """
    model_config = ConfigDict(frozen=True)

    field: str
    path: str
    message: str
    severity: Severity = Severity.ERROR


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    errors: list[ValidationError] = Field(default_factory=list)
    warnings: list[ValidationError] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return not self.errors


class FieldRules(BaseModel):
    """Validation rules for one field, as used by real-time field checks.

    ``pattern`` is one of ``email``, ``phone``, ``url`` or ``reference``.
    """
    model_config = ConfigDict(frozen=True)

    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    target_type: Optional[str] = None
    item_type: Optional[ItemType] = None

    @classmethod
    def from_schema_node(cls, node: SchemaNode) -> "FieldRules":
        return cls(
            required=node.required,
            min_length=node.min_length,
            max_length=node.max_length,
            pattern=_pattern_for(node),
            target_type=node.target_type,
            item_type=node.type,
        )


# ============================================================================
# Rule checks
# ============================================================================

def _error(label: str, path: str, message: str) -> ValidationError:
    return ValidationError(field=label, path=path, message=f"{label} {message}")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _pattern_for(node: SchemaNode) -> Optional[str]:
    if node.pattern in ("email", "phone"):
        return node.pattern
    if node.type in (ItemType.URL, ItemType.URI):
        return "url"
    if node.type == ItemType.REFERENCE:
        return "reference"
    return node.pattern


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_PATTERN.match(value))


def is_valid_phone(value: str) -> bool:
    """1 to 16 digits once spaces, dashes and parentheses are removed; optional ``+``."""
    return bool(PHONE_PATTERN.match(PHONE_SEPARATORS.sub("", value)))


def is_valid_url(value: str) -> bool:
    return bool(URL_PATTERN.match(value))


def _check_length(value: str, label: str, path: str, rules: FieldRules) -> Optional[ValidationError]:
    if rules.min_length is not None and len(value) < rules.min_length:
        return _error(label, path, f"must be at least {rules.min_length} characters long")
    if rules.max_length is not None and len(value) > rules.max_length:
        return _error(label, path, f"must be no more than {rules.max_length} characters long")
    return None


def _check_pattern(value: str, label: str, path: str, rules: FieldRules) -> Optional[ValidationError]:
    if rules.pattern == "email" and not is_valid_email(value):
        return _error(label, path, "must be a valid email address")
    if rules.pattern == "phone" and not is_valid_phone(value):
        return _error(label, path, "must be a valid phone number")
    if rules.pattern == "url" and not is_valid_url(value):
        return _error(label, path, "must be a valid URL starting with http:// or https://")
    if rules.pattern == "reference":
        resource_type, sep, resource_id = value.partition("/")
        if not (sep and resource_type and resource_id):
            return _error(label, path, 'must be a valid FHIR reference (e.g., "ResourceType/id")')
        if rules.target_type and resource_type != rules.target_type:
            return _error(label, path, f"must reference a {rules.target_type}")
    return None


def _check_value(value: Any, label: str, path: str, rules: FieldRules) -> list[ValidationError]:
    """Length and pattern checks for one present value; both may fire."""
    if not isinstance(value, str):
        return []
    found = [_check_length(value, label, path, rules), _check_pattern(value, label, path, rules)]
    return [error for error in found if error is not None]


def _answer_text(answer: TypedValue) -> Any:
    """String view of an answer for length/pattern checks; other kinds pass through."""
    if answer.value_string is not None:
        return answer.value_string
    if answer.value_uri is not None:
        return answer.value_uri
    if answer.value_reference is not None:
        return answer.value_reference.reference
    return answer.scalar


# ============================================================================
# Tree validation
# ============================================================================

def _validate_scope(
    nodes: Iterable[AnswerNode],
    schema_items: Iterable[SchemaNode],
    errors: list[ValidationError],
) -> None:
    items = tuple(schema_items)
    by_path = {item.link_id: item for item in items}
    seen = set()

    for node in nodes:
        schema_node = by_path.get(node.link_id)
        if schema_node is None:
            continue
        seen.add(node.link_id)
        _validate_node(node, schema_node, errors)

    for item in items:
        if item.required and item.link_id not in seen:
            errors.append(_error(item.label, item.link_id, "is required"))


def _validate_node(node: AnswerNode, schema_node: SchemaNode, errors: list[ValidationError]) -> None:
    label = schema_node.label

    if schema_node.is_group:
        if schema_node.required and not node.has_value():
            errors.append(_error(label, node.link_id, "is required"))
        _validate_scope(node.children, schema_node.items, errors)
        return

    rules = FieldRules.from_schema_node(schema_node)
    values = [_answer_text(answer) for answer in node.answers]
    present = [value for value in values if not _is_blank(value)]

    if rules.required and not present:
        errors.append(_error(label, node.link_id, "is required"))
        return

    for value in present:
        errors.extend(_check_value(value, label, node.link_id, rules))


def validate(tree: AnswerTree, schema: SchemaModel) -> ValidationResult:
    """Validate an answer tree against a schema.

    Parameters:
        tree: Answer tree to check (not modified)
        schema: Schema of the record kind being edited

    Returns:
        ValidationResult: ``is_valid`` is False when any error was found

    Example:
        ```python
        result = validate(session.tree, load_schema("person"))
        for error in result.errors:
            print(error.path, error.message)
        ```
    """
    if tree.is_empty():
        return ValidationResult(errors=[
            ValidationError(field=FORM_FIELD, path=FORM_FIELD, message=EMPTY_FORM_MESSAGE)
        ])

    errors: list[ValidationError] = []
    _validate_scope(tree.children, schema.items, errors)
    return ValidationResult(
        errors=[e for e in errors if e.severity == Severity.ERROR],
        warnings=[e for e in errors if e.severity == Severity.WARNING],
    )


def validate_field(value: Any, field_name: str, rules: FieldRules) -> Optional[ValidationError]:
    """Real-time check of a single value, returning the first failing rule.

    Parameters:
        value: Raw field value (string, number, TypedValue or None)
        field_name: Label used in the message
        rules: Rules for the field, usually from ``get_field_rules``

    Returns:
        The first ValidationError, or None when the value passes
    """
    if isinstance(value, TypedValue):
        value = _answer_text(value)

    if _is_blank(value):
        if rules.required:
            return _error(field_name, field_name, "is required")
        return None

    if isinstance(value, str):
        return _check_length(value, field_name, field_name, rules) or _check_pattern(
            value, field_name, field_name, rules
        )
    return None


def get_field_rules(schema: SchemaModel, path: str, parent: Optional[SchemaNode] = None) -> FieldRules:
    """Rules for the schema node at ``path`` (scoped to ``parent``); empty rules if unknown."""
    node = schema.find(path, parent=parent)
    if node is None:
        return FieldRules()
    return FieldRules.from_schema_node(node)
