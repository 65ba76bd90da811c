"""Role assignment (FHIR PractitionerRole) mapper.

Links a person to an organization; both links, and the optional locations,
are carried as ``Kind/id`` references. Not represented: ``id``, codings
beyond the first in ``code``/``specialty`` and reference displays.
"""

from typing import Any

from src.domain.answer_tree import AnswerTree
from src.domain.enums import RecordKind
from src.domain.mappers.base import (
    RecordMapper,
    boolean_leaf,
    read_boolean,
    read_reference,
    read_references,
    reference_leaf,
    references_leaf,
)
from src.domain.mappers.datatypes import (
    emit_concept,
    emit_contact_point,
    emit_period,
    read_concept,
    read_contact_point,
    read_each,
    read_one,
    read_period,
)
from src.domain.records import RoleAssignmentRecord


class RoleAssignmentMapper(RecordMapper):
    kind = RecordKind.ROLE_ASSIGNMENT
    record_type = RoleAssignmentRecord

    def emit(self, record: RoleAssignmentRecord) -> list:
        return [
            reference_leaf("practitioner", record.practitioner),
            reference_leaf("organization", record.organization),
            *(emit_concept(concept, "code") for concept in record.code),
            *(emit_concept(concept, "specialty") for concept in record.specialty),
            references_leaf("location", record.location),
            *(emit_contact_point(contact) for contact in record.telecom),
            emit_period(record.period) if record.period else None,
            boolean_leaf("active", record.active),
        ]

    def read(self, tree: AnswerTree) -> dict[str, Any]:
        return {
            "practitioner": read_reference(tree, "practitioner"),
            "organization": read_reference(tree, "organization"),
            "code": read_each(tree, "code", read_concept),
            "specialty": read_each(tree, "specialty", read_concept),
            "location": read_references(tree, "location"),
            "telecom": read_each(tree, "telecom", read_contact_point),
            "period": read_one(tree, "period", read_period),
            "active": read_boolean(tree, "active"),
        }
