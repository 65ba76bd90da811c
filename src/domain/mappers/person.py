"""Person (FHIR Practitioner) mapper.

Not represented in the answer tree: ``id`` and empty or blank elements.
"""

from typing import Any

from src.domain.answer_tree import AnswerTree
from src.domain.enums import AdministrativeGender, RecordKind
from src.domain.mappers.base import (
    RecordMapper,
    boolean_leaf,
    coding_leaf,
    date_leaf,
    read_boolean,
    read_code,
    read_date,
)
from src.domain.mappers.datatypes import (
    emit_address,
    emit_contact_point,
    emit_human_name,
    emit_identifier,
    read_address,
    read_contact_point,
    read_each,
    read_human_name,
    read_identifier,
)
from src.domain.records import PersonRecord


class PersonMapper(RecordMapper):
    kind = RecordKind.PERSON
    record_type = PersonRecord

    def emit(self, record: PersonRecord) -> list:
        return [
            *(emit_human_name(name) for name in record.name),
            *(emit_identifier(identifier) for identifier in record.identifier),
            *(emit_contact_point(contact) for contact in record.telecom),
            *(emit_address(address) for address in record.address),
            coding_leaf("gender", record.gender),
            date_leaf("birthDate", record.birth_date),
            boolean_leaf("active", record.active),
        ]

    def read(self, tree: AnswerTree) -> dict[str, Any]:
        return {
            "name": read_each(tree, "name", read_human_name),
            "identifier": read_each(tree, "identifier", read_identifier),
            "telecom": read_each(tree, "telecom", read_contact_point),
            "address": read_each(tree, "address", read_address),
            "gender": read_code(tree, "gender", AdministrativeGender),
            "birth_date": read_date(tree, "birthDate", with_time=False),
            "active": read_boolean(tree, "active"),
        }
