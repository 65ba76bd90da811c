"""Domain layer for Questionnaire Bridge.

This module contains the record models, the answer tree and schema models,
and the mapping and validation engine binding them. All domain models are
pure Python with no external dependencies beyond Pydantic.
"""

from .answer_tree import AnswerNode, AnswerTree, TypedValue
from .enums import RecordKind
from .paths import resolve, resolve_scalar
from .records import (
    LocationRecord,
    OrganizationRecord,
    PersonRecord,
    RoleAssignmentRecord,
)
from .schema import SchemaModel, SchemaNode, load_schema
from .validation import ValidationResult, validate

__all__ = [
    "AnswerNode",
    "AnswerTree",
    "TypedValue",
    "RecordKind",
    "resolve",
    "resolve_scalar",
    "PersonRecord",
    "OrganizationRecord",
    "LocationRecord",
    "RoleAssignmentRecord",
    "SchemaModel",
    "SchemaNode",
    "load_schema",
    "ValidationResult",
    "validate",
]
