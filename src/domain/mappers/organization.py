"""Organization mapper.

Not represented in the answer tree: ``id``, codings beyond the first in each
``type`` and ``partOf.display``.
"""

from typing import Any

from src.domain.answer_tree import AnswerTree
from src.domain.enums import RecordKind
from src.domain.mappers.base import (
    RecordMapper,
    boolean_leaf,
    read_boolean,
    read_reference,
    read_string,
    read_strings,
    reference_leaf,
    string_leaf,
    strings_leaf,
)
from src.domain.mappers.datatypes import (
    emit_address,
    emit_concept,
    emit_contact_point,
    emit_identifier,
    read_address,
    read_concept,
    read_contact_point,
    read_each,
    read_identifier,
)
from src.domain.records import OrganizationRecord


class OrganizationMapper(RecordMapper):
    kind = RecordKind.ORGANIZATION
    record_type = OrganizationRecord

    def emit(self, record: OrganizationRecord) -> list:
        return [
            string_leaf("name", record.name),
            strings_leaf("alias", record.alias),
            *(emit_identifier(identifier) for identifier in record.identifier),
            *(emit_concept(concept, "type") for concept in record.type),
            *(emit_contact_point(contact) for contact in record.telecom),
            *(emit_address(address) for address in record.address),
            boolean_leaf("active", record.active),
            reference_leaf("partOf", record.part_of),
        ]

    def read(self, tree: AnswerTree) -> dict[str, Any]:
        return {
            "name": read_string(tree, "name"),
            "alias": read_strings(tree, "alias"),
            "identifier": read_each(tree, "identifier", read_identifier),
            "type": read_each(tree, "type", read_concept),
            "telecom": read_each(tree, "telecom", read_contact_point),
            "address": read_each(tree, "address", read_address),
            "active": read_boolean(tree, "active"),
            "part_of": read_reference(tree, "partOf"),
        }
