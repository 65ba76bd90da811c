"""Shared fixtures: one fully populated sample record per kind."""

from datetime import date

import pytest

from src.domain.enums import (
    AddressType,
    AddressUse,
    ContactPointSystem,
    ContactPointUse,
    IdentifierUse,
    LocationMode,
    LocationStatus,
    NameUse,
    RecordKind,
)
from src.domain.records import (
    Address,
    CodeableConcept,
    Coding,
    ContactPoint,
    HumanName,
    Identifier,
    LocationRecord,
    OrganizationRecord,
    Period,
    PersonRecord,
    Reference,
    RoleAssignmentRecord,
)


def make_person() -> PersonRecord:
    return PersonRecord(
        id="pr-1",
        active=True,
        identifier=[
            Identifier(use=IdentifierUse.OFFICIAL, system="http://hl7.org/fhir/sid/us-npi", value="1234567890"),
            Identifier(system="urn:oid:2.16.840.1.113883.4.6", value="LIC-1"),
            Identifier(use=IdentifierUse.SECONDARY, value="EMP-7"),
        ],
        name=[
            HumanName(use=NameUse.OFFICIAL, family="Smith", given=["Jane", "Quinn"], prefix=["Dr."], suffix=["MD"]),
            HumanName(use=NameUse.NICKNAME, text="Janie Smith", family="Smith"),
        ],
        telecom=[
            ContactPoint(
                system=ContactPointSystem.PHONE,
                value="+1 (555) 123-4567",
                use=ContactPointUse.WORK,
                rank=1,
            ),
            ContactPoint(system=ContactPointSystem.EMAIL, value="jane.smith@example.org"),
        ],
        address=[
            Address(
                use=AddressUse.WORK,
                type=AddressType.PHYSICAL,
                line=["1 Main St", "Suite 200"],
                city="Boston",
                state="MA",
                postal_code="02110",
                country="US",
            )
        ],
        gender="female",
        birth_date=date(1980, 1, 15),
    )


def make_organization() -> OrganizationRecord:
    return OrganizationRecord(
        id="org-1",
        active=True,
        identifier=[Identifier(system="urn:ietf:rfc:3986", value="GH-001")],
        type=[
            CodeableConcept(
                coding=[Coding(
                    system="http://terminology.hl7.org/CodeSystem/organization-type",
                    code="prov",
                    display="Healthcare Provider",
                )],
                text="Provider",
            )
        ],
        name="General Hospital",
        alias=["GH", "General"],
        telecom=[ContactPoint(system=ContactPointSystem.URL, value="https://gh.example.org")],
        address=[
            Address(line=["10 Hospital Rd"], city="Springfield", postal_code="01101"),
            Address(use=AddressUse.BILLING, text="PO Box 42, Springfield"),
        ],
        part_of=Reference(reference="Organization/org-parent"),
    )


def make_location() -> LocationRecord:
    return LocationRecord(
        id="loc-1",
        status=LocationStatus.ACTIVE,
        name="Cardiology Clinic",
        alias=["Heart Center"],
        description="Outpatient cardiology, second floor",
        mode=LocationMode.INSTANCE,
        type=[
            CodeableConcept(coding=[Coding(
                system="http://terminology.hl7.org/CodeSystem/v3-RoleCode",
                code="CARD",
                display="Ambulatory Health Care Facilities; Clinic/Center; Rehabilitation: Cardiac Facilities",
            )])
        ],
        telecom=[ContactPoint(system=ContactPointSystem.PHONE, value="555-0100", use=ContactPointUse.WORK)],
        address=Address(line=["2 Heart Way"], city="Boston", postal_code="02111"),
        physical_type=CodeableConcept(coding=[Coding(
            system="http://terminology.hl7.org/CodeSystem/location-physical-type",
            code="ro",
            display="Room",
        )]),
        managing_organization=Reference(reference="Organization/org-1"),
        part_of=Reference(reference="Location/loc-0"),
    )


def make_role_assignment() -> RoleAssignmentRecord:
    return RoleAssignmentRecord(
        id="role-1",
        active=True,
        period=Period(start=date(2020, 1, 1), end=date(2025, 12, 31)),
        practitioner=Reference(reference="Practitioner/pr-1"),
        organization=Reference(reference="Organization/org-1"),
        code=[
            CodeableConcept(coding=[Coding(
                system="http://terminology.hl7.org/CodeSystem/practitioner-role",
                code="doctor",
                display="Doctor",
            )])
        ],
        specialty=[
            CodeableConcept(
                coding=[Coding(system="http://snomed.info/sct", code="394579002", display="Cardiology")],
                text="Cardiology",
            )
        ],
        location=[Reference(reference="Location/loc-1"), Reference(reference="Location/loc-2")],
        telecom=[ContactPoint(system=ContactPointSystem.PHONE, value="555-0199")],
    )


SAMPLE_FACTORIES = {
    RecordKind.PERSON: make_person,
    RecordKind.ORGANIZATION: make_organization,
    RecordKind.LOCATION: make_location,
    RecordKind.ROLE_ASSIGNMENT: make_role_assignment,
}


@pytest.fixture
def person() -> PersonRecord:
    return make_person()


@pytest.fixture
def organization() -> OrganizationRecord:
    return make_organization()


@pytest.fixture
def location() -> LocationRecord:
    return make_location()


@pytest.fixture
def role_assignment() -> RoleAssignmentRecord:
    return make_role_assignment()


@pytest.fixture
def sample_records() -> dict:
    return {kind: factory() for kind, factory in SAMPLE_FACTORIES.items()}
