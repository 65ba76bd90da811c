"""Location mapper.

Location carries a single address and a single physical type, so both are
rebuilt from the first matching group in scope. Not represented: ``id``,
codings beyond the first, and reference displays.
"""

from typing import Any

from src.domain.answer_tree import AnswerTree
from src.domain.enums import LocationMode, LocationStatus, RecordKind
from src.domain.mappers.base import (
    RecordMapper,
    coding_leaf,
    read_code,
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
    read_address,
    read_concept,
    read_contact_point,
    read_each,
    read_one,
)
from src.domain.records import LocationRecord


class LocationMapper(RecordMapper):
    kind = RecordKind.LOCATION
    record_type = LocationRecord

    def emit(self, record: LocationRecord) -> list:
        return [
            string_leaf("name", record.name),
            strings_leaf("alias", record.alias),
            string_leaf("description", record.description),
            coding_leaf("status", record.status),
            coding_leaf("mode", record.mode),
            *(emit_concept(concept, "type") for concept in record.type),
            *(emit_contact_point(contact) for contact in record.telecom),
            emit_address(record.address) if record.address else None,
            emit_concept(record.physical_type, "physicalType") if record.physical_type else None,
            reference_leaf("managingOrganization", record.managing_organization),
            reference_leaf("partOf", record.part_of),
        ]

    def read(self, tree: AnswerTree) -> dict[str, Any]:
        return {
            "name": read_string(tree, "name"),
            "alias": read_strings(tree, "alias"),
            "description": read_string(tree, "description"),
            "status": read_code(tree, "status", LocationStatus),
            "mode": read_code(tree, "mode", LocationMode),
            "type": read_each(tree, "type", read_concept),
            "telecom": read_each(tree, "telecom", read_contact_point),
            "address": read_one(tree, "address", read_address),
            "physical_type": read_one(tree, "physicalType", read_concept),
            "managing_organization": read_reference(tree, "managingOrganization"),
            "part_of": read_reference(tree, "partOf"),
        }
