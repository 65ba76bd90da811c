"""Domain Record Definitions.

This module defines the canonical data models for the four clinical directory
record kinds handled by the mapping engine: persons (FHIR Practitioner),
organizations, locations and role assignments (FHIR PractitionerRole).

Records are the typed side of the form bridge. The generic side is the answer
tree (see ``src.domain.answer_tree``); the mappers in ``src.domain.mappers``
translate between the two.

Architecture:
    - Pure domain models with zero infrastructure dependencies
    - Models are immutable and validated before use (Pydantic V2)
    - Python attribute names are snake_case; FHIR JSON names are aliases
    - ``to_fhir`` / ``from_fhir`` convert to and from the FHIR wire shape
"""

import re
from datetime import date, datetime
from typing import ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from src.domain.enums import (
    AddressType,
    AddressUse,
    AdministrativeGender,
    ContactPointSystem,
    ContactPointUse,
    IdentifierUse,
    LocationMode,
    LocationStatus,
    NameUse,
    RecordKind,
)
from src.domain.utils import prune_empty

# FHIR date and dateTime may be reduced to a year or a year and month
PARTIAL_DATE_PATTERN = re.compile(r"^\d{4}(-(0[1-9]|1[0-2]))?$")
FULL_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Partial dates stay strings; full dates and date-times become Python objects
FHIRDate = Union[date, str]
FHIRDateTime = Union[datetime, date, str]


def parse_fhir_date(value, allow_time: bool = False):
    """Normalise a FHIR ``date`` (or ``dateTime`` when ``allow_time``) value.

    Parameters:
        value: date, datetime or ISO string, possibly of partial precision
        allow_time: Accept a time of day (FHIR dateTime)

    Returns:
        A ``date``, a ``datetime`` (only when ``allow_time``), or the partial
        date string (``"1970"``, ``"1970-05"``) unchanged

    Raises:
        ValueError: If the value is not a FHIR date or dateTime
    """
    if isinstance(value, datetime):
        if allow_time:
            return value
        if value.time() != datetime.min.time():
            raise ValueError(f"A date cannot carry a time of day: {value.isoformat()}")
        return value.date()
    if isinstance(value, date) or not isinstance(value, str):
        return value

    text = value.strip()
    if PARTIAL_DATE_PATTERN.match(text):
        return text
    if FULL_DATE_PATTERN.match(text):
        return date.fromisoformat(text)
    if allow_time and "T" in text:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    raise ValueError(f"Not a FHIR {'dateTime' if allow_time else 'date'}: {value!r}")


def calendar_key(value: FHIRDateTime) -> str:
    """``YYYY[-MM[-DD]]`` prefix of a FHIR date or dateTime, for ordering checks."""
    if isinstance(value, date):
        return value.isoformat()[:10]
    return value


class FHIRModel(BaseModel):
    """Base for every FHIR datatype and record model."""

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_fhir(self) -> dict:
        return prune_empty(self.model_dump(by_alias=True, exclude_none=True, mode="json"))


# ============================================================================
# Datatypes
# ============================================================================

class Coding(FHIRModel):
    """A code from a code system. ``version`` and ``userSelected`` are not modelled."""
    system: Optional[str] = None
    code: Optional[str] = None
    display: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.system or self.code or self.display)


class CodeableConcept(FHIRModel):
    coding: list[Coding] = Field(default_factory=list)
    text: Optional[str] = None

    @property
    def primary(self) -> Optional[Coding]:
        """First coding, the only one carried through an answer tree."""
        return self.coding[0] if self.coding else None


class Reference(FHIRModel):
    """Typed pointer to another record, ``<ResourceType>/<id>``.

    Only ``reference`` travels through an answer tree; ``display`` is kept on
    the record for callers that populate it from search results. A
    display-only reference is valid FHIR and is dropped by the forward mapper.
    """
    reference: Optional[str] = None
    display: Optional[str] = None

    @classmethod
    def to(cls, kind: RecordKind, record_id: str) -> "Reference":
        return cls(reference=f"{RecordKind.parse(kind).value}/{record_id}")

    @property
    def resource_type(self) -> Optional[str]:
        if self.reference is None:
            return None
        head, sep, _ = self.reference.partition("/")
        return head if sep else None

    @property
    def resource_id(self) -> Optional[str]:
        if self.reference is None:
            return None
        _, sep, tail = self.reference.partition("/")
        return tail if sep else None


class Identifier(FHIRModel):
    use: Optional[IdentifierUse] = None
    system: Optional[str] = None
    value: Optional[str] = None


class HumanName(FHIRModel):
    use: Optional[NameUse] = None
    text: Optional[str] = None
    family: Optional[str] = None
    given: list[str] = Field(default_factory=list)
    prefix: list[str] = Field(default_factory=list)
    suffix: list[str] = Field(default_factory=list)


class ContactPoint(FHIRModel):
    system: Optional[ContactPointSystem] = None
    value: Optional[str] = None
    use: Optional[ContactPointUse] = None
    rank: Optional[int] = Field(None, ge=1, description="Preference order, 1 is highest")


class Address(FHIRModel):
    use: Optional[AddressUse] = None
    type: Optional[AddressType] = None
    text: Optional[str] = None
    line: list[str] = Field(default_factory=list)
    city: Optional[str] = None
    district: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class Period(FHIRModel):
    """Time range. Bounds are FHIR dateTimes and may be partial (``"2020-05"``)."""
    start: Optional[FHIRDateTime] = None
    end: Optional[FHIRDateTime] = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_bound(cls, v):
        return None if v is None else parse_fhir_date(v, allow_time=True)

    @model_validator(mode="after")
    def check_order(self) -> "Period":
        """Reject periods that end before they start.

        Two date-times are compared directly; otherwise the calendar parts
        are compared at the coarser precision of the two bounds.
        """
        if self.start is None or self.end is None:
            return self
        start, end = self.start, self.end
        both_times = isinstance(start, datetime) and isinstance(end, datetime)
        if both_times and (start.tzinfo is None) == (end.tzinfo is None):
            ends_first = end < start
        else:
            start_key, end_key = calendar_key(start), calendar_key(end)
            precision = min(len(start_key), len(end_key))
            ends_first = end_key[:precision] < start_key[:precision]
        if ends_first:
            raise ValueError(f"Period end {self.end} is before start {self.start}")
        return self


# ============================================================================
# Records
# ============================================================================

class DomainRecord(FHIRModel):
    """Common base for the four record kinds.

    ``id`` is assigned by the server and is never carried through an answer
    tree; the editing session reattaches it before saving.
    """

    kind: ClassVar[RecordKind]

    id: Optional[str] = None

    def to_fhir(self) -> dict:
        return {"resourceType": self.kind.value, **super().to_fhir()}

    @classmethod
    def from_fhir(cls, data: dict) -> "DomainRecord":
        """Build a record from FHIR JSON, ignoring elements the model does not carry.

        Raises:
            ValueError: If ``resourceType`` names a different kind
            pydantic.ValidationError: If the payload does not fit the model
        """
        payload = dict(data)
        resource_type = payload.pop("resourceType", cls.kind.value)
        if resource_type != cls.kind.value:
            raise ValueError(f"Expected resourceType {cls.kind.value}, got {resource_type}")
        return cls.model_validate(payload)

    def with_id(self, record_id: Optional[str]) -> "DomainRecord":
        return self.model_copy(update={"id": record_id})


class PersonRecord(DomainRecord):
    """A person who provides care (FHIR Practitioner).

    Parameters:
        active: Whether the record is in active use
        identifier: Business identifiers (NPI, licence numbers)
        name: Names, in order of preference
        telecom: Contact points
        address: Postal or physical addresses
        gender: Administrative gender
        birth_date: Date of birth
    """
    kind: ClassVar[RecordKind] = RecordKind.PERSON

    active: Optional[bool] = None
    identifier: list[Identifier] = Field(default_factory=list)
    name: list[HumanName] = Field(default_factory=list)
    telecom: list[ContactPoint] = Field(default_factory=list)
    address: list[Address] = Field(default_factory=list)
    gender: Optional[AdministrativeGender] = None
    birth_date: Optional[FHIRDate] = None

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, v) -> Optional[AdministrativeGender]:
        """Accept common abbreviations and casing for gender codes."""
        if v is None or isinstance(v, AdministrativeGender):
            return v
        mapping = {
            "m": AdministrativeGender.MALE,
            "f": AdministrativeGender.FEMALE,
            "o": AdministrativeGender.OTHER,
            "u": AdministrativeGender.UNKNOWN,
        }
        v_str = str(v).strip().lower()
        return mapping.get(v_str, v_str)

    @field_validator("birth_date", mode="before")
    @classmethod
    def parse_birth_date(cls, v):
        """Full dates become ``date``; year or year-month precision stays a string."""
        return None if v is None else parse_fhir_date(v)


class OrganizationRecord(DomainRecord):
    """A formally recognised grouping of people or organizations."""
    kind: ClassVar[RecordKind] = RecordKind.ORGANIZATION

    active: Optional[bool] = None
    identifier: list[Identifier] = Field(default_factory=list)
    type: list[CodeableConcept] = Field(default_factory=list)
    name: Optional[str] = None
    alias: list[str] = Field(default_factory=list)
    telecom: list[ContactPoint] = Field(default_factory=list)
    address: list[Address] = Field(default_factory=list)
    part_of: Optional[Reference] = None


class LocationRecord(DomainRecord):
    """A physical place where services are provided."""
    kind: ClassVar[RecordKind] = RecordKind.LOCATION

    status: Optional[LocationStatus] = None
    name: Optional[str] = None
    alias: list[str] = Field(default_factory=list)
    description: Optional[str] = None
    mode: Optional[LocationMode] = None
    type: list[CodeableConcept] = Field(default_factory=list)
    telecom: list[ContactPoint] = Field(default_factory=list)
    address: Optional[Address] = None
    physical_type: Optional[CodeableConcept] = None
    managing_organization: Optional[Reference] = None
    part_of: Optional[Reference] = None


class RoleAssignmentRecord(DomainRecord):
    """Roles a person may perform at an organization (FHIR PractitionerRole)."""
    kind: ClassVar[RecordKind] = RecordKind.ROLE_ASSIGNMENT

    active: Optional[bool] = None
    period: Optional[Period] = None
    practitioner: Optional[Reference] = None
    organization: Optional[Reference] = None
    code: list[CodeableConcept] = Field(default_factory=list)
    specialty: list[CodeableConcept] = Field(default_factory=list)
    location: list[Reference] = Field(default_factory=list)
    telecom: list[ContactPoint] = Field(default_factory=list)


RECORD_TYPES: dict[RecordKind, type[DomainRecord]] = {
    RecordKind.PERSON: PersonRecord,
    RecordKind.ORGANIZATION: OrganizationRecord,
    RecordKind.LOCATION: LocationRecord,
    RecordKind.ROLE_ASSIGNMENT: RoleAssignmentRecord,
}


def record_from_fhir(data: dict) -> DomainRecord:
    """Dispatch a FHIR JSON resource to the matching record model by ``resourceType``."""
    kind = RecordKind.parse(data.get("resourceType", ""))
    return RECORD_TYPES[kind].from_fhir(data)
