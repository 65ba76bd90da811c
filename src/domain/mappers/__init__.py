"""Record mappers for the form bridge.

One ``RecordMapper`` per record kind, selected through ``get_mapper``.
"""

from typing import Optional

from src.domain.enums import RecordKind
from src.domain.mappers.base import RecordMapper
from src.domain.mappers.location import LocationMapper
from src.domain.mappers.organization import OrganizationMapper
from src.domain.mappers.person import PersonMapper
from src.domain.mappers.role_assignment import RoleAssignmentMapper
from src.domain.ports import UnsupportedRecordKindError
from src.domain.schema import SchemaModel

__all__ = [
    "RecordMapper",
    "PersonMapper",
    "OrganizationMapper",
    "LocationMapper",
    "RoleAssignmentMapper",
    "get_mapper",
]

_MAPPERS: dict[RecordKind, type[RecordMapper]] = {
    RecordKind.PERSON: PersonMapper,
    RecordKind.ORGANIZATION: OrganizationMapper,
    RecordKind.LOCATION: LocationMapper,
    RecordKind.ROLE_ASSIGNMENT: RoleAssignmentMapper,
}


def get_mapper(kind, schema: Optional[SchemaModel] = None) -> RecordMapper:
    """Factory returning the mapper for a record kind.

    Parameters:
        kind: RecordKind, FHIR resource type (``"PractitionerRole"``) or
            kind slug (``"role-assignment"``)
        schema: Schema used to label emitted nodes; defaults to the packaged
            schema for the kind

    Returns:
        RecordMapper: Mapper instance for the kind

    Raises:
        UnsupportedRecordKindError: If no mapper is registered for the kind

    Example Usage:
        ```python
        mapper = get_mapper("role-assignment")
        tree = mapper.to_tree(role)
        ```
    """
    try:
        record_kind = RecordKind.parse(kind)
    except ValueError as e:
        raise UnsupportedRecordKindError(
            f"No mapper found for record kind: {kind}. "
            f"Supported kinds: {', '.join(k.slug for k in RecordKind)}",
            kind=str(kind),
        ) from e
    return _MAPPERS[record_kind](schema=schema)
