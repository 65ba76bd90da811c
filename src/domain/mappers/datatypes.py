"""Emit/read pairs for the FHIR datatypes shared across record kinds.

Each ``emit_*`` function returns a group node (or None when nothing is
present) and each ``read_*`` function rebuilds the datatype from one such
group, using only lookups scoped to that group. The child paths are
``<prefix>.<element>``, so one prefix fully determines a datatype's
emission and reading paths.
"""

from typing import Optional

from src.domain.answer_tree import AnswerNode
from src.domain.enums import (
    AddressType,
    AddressUse,
    ContactPointSystem,
    ContactPointUse,
    IdentifierUse,
    NameUse,
)
from src.domain.mappers.base import (
    coding_leaf,
    date_leaf,
    group,
    integer_leaf,
    read_code,
    read_date,
    read_integer,
    read_string,
    read_strings,
    safe_build,
    string_leaf,
    strings_leaf,
)
from src.domain.paths import Scope, resolve
from src.domain.records import (
    Address,
    CodeableConcept,
    Coding,
    ContactPoint,
    HumanName,
    Identifier,
    Period,
)


def emit_identifier(identifier: Identifier, prefix: str = "identifier") -> Optional[AnswerNode]:
    return group(prefix, [
        coding_leaf(f"{prefix}.use", identifier.use),
        string_leaf(f"{prefix}.system", identifier.system),
        string_leaf(f"{prefix}.value", identifier.value),
    ])


def read_identifier(node: AnswerNode, prefix: str = "identifier") -> Optional[Identifier]:
    return safe_build(
        Identifier,
        use=read_code(node, f"{prefix}.use", IdentifierUse),
        system=read_string(node, f"{prefix}.system"),
        value=read_string(node, f"{prefix}.value"),
    )


def emit_human_name(name: HumanName, prefix: str = "name") -> Optional[AnswerNode]:
    return group(prefix, [
        coding_leaf(f"{prefix}.use", name.use),
        string_leaf(f"{prefix}.text", name.text),
        string_leaf(f"{prefix}.family", name.family),
        strings_leaf(f"{prefix}.given", name.given),
        strings_leaf(f"{prefix}.prefix", name.prefix),
        strings_leaf(f"{prefix}.suffix", name.suffix),
    ])


def read_human_name(node: AnswerNode, prefix: str = "name") -> Optional[HumanName]:
    return safe_build(
        HumanName,
        use=read_code(node, f"{prefix}.use", NameUse),
        text=read_string(node, f"{prefix}.text"),
        family=read_string(node, f"{prefix}.family"),
        given=read_strings(node, f"{prefix}.given"),
        prefix=read_strings(node, f"{prefix}.prefix"),
        suffix=read_strings(node, f"{prefix}.suffix"),
    )


def emit_contact_point(contact: ContactPoint, prefix: str = "telecom") -> Optional[AnswerNode]:
    return group(prefix, [
        coding_leaf(f"{prefix}.system", contact.system),
        string_leaf(f"{prefix}.value", contact.value),
        coding_leaf(f"{prefix}.use", contact.use),
        integer_leaf(f"{prefix}.rank", contact.rank),
    ])


def read_contact_point(node: AnswerNode, prefix: str = "telecom") -> Optional[ContactPoint]:
    return safe_build(
        ContactPoint,
        system=read_code(node, f"{prefix}.system", ContactPointSystem),
        value=read_string(node, f"{prefix}.value"),
        use=read_code(node, f"{prefix}.use", ContactPointUse),
        rank=read_integer(node, f"{prefix}.rank"),
    )


def emit_address(address: Address, prefix: str = "address") -> Optional[AnswerNode]:
    return group(prefix, [
        coding_leaf(f"{prefix}.use", address.use),
        coding_leaf(f"{prefix}.type", address.type),
        string_leaf(f"{prefix}.text", address.text),
        strings_leaf(f"{prefix}.line", address.line),
        string_leaf(f"{prefix}.city", address.city),
        string_leaf(f"{prefix}.district", address.district),
        string_leaf(f"{prefix}.state", address.state),
        string_leaf(f"{prefix}.postalCode", address.postal_code),
        string_leaf(f"{prefix}.country", address.country),
    ])


def read_address(node: AnswerNode, prefix: str = "address") -> Optional[Address]:
    return safe_build(
        Address,
        use=read_code(node, f"{prefix}.use", AddressUse),
        type=read_code(node, f"{prefix}.type", AddressType),
        text=read_string(node, f"{prefix}.text"),
        line=read_strings(node, f"{prefix}.line"),
        city=read_string(node, f"{prefix}.city"),
        district=read_string(node, f"{prefix}.district"),
        state=read_string(node, f"{prefix}.state"),
        postal_code=read_string(node, f"{prefix}.postalCode"),
        country=read_string(node, f"{prefix}.country"),
    )


def emit_concept(concept: CodeableConcept, prefix: str) -> Optional[AnswerNode]:
    """Only the first coding is carried; further codings are not represented."""
    coding = concept.primary or Coding()
    return group(prefix, [
        string_leaf(f"{prefix}.system", coding.system),
        string_leaf(f"{prefix}.code", coding.code),
        string_leaf(f"{prefix}.display", coding.display),
        string_leaf(f"{prefix}.text", concept.text),
    ])


def read_concept(node: AnswerNode, prefix: str) -> Optional[CodeableConcept]:
    coding = safe_build(
        Coding,
        system=read_string(node, f"{prefix}.system"),
        code=read_string(node, f"{prefix}.code"),
        display=read_string(node, f"{prefix}.display"),
    )
    return safe_build(
        CodeableConcept,
        coding=[coding] if coding is not None else [],
        text=read_string(node, f"{prefix}.text"),
    )


def emit_period(period: Period, prefix: str = "period") -> Optional[AnswerNode]:
    return group(prefix, [
        date_leaf(f"{prefix}.start", period.start),
        date_leaf(f"{prefix}.end", period.end),
    ])


def read_period(node: AnswerNode, prefix: str = "period") -> Optional[Period]:
    return safe_build(
        Period,
        start=read_date(node, f"{prefix}.start"),
        end=read_date(node, f"{prefix}.end"),
    )


# ============================================================================
# Repeated groups
# ============================================================================

def read_each(scope: Scope, prefix: str, reader) -> list:
    """Apply ``reader`` to every ``prefix`` group in scope, keeping tree order.

    Groups that yield nothing are skipped; no de-duplication or re-sorting.
    """
    built = (reader(node, prefix) for node in resolve(scope, prefix))
    return [item for item in built if item is not None]


def read_one(scope: Scope, prefix: str, reader):
    """First non-empty ``prefix`` group in scope, for singular composite fields."""
    return next(iter(read_each(scope, prefix, reader)), None)
