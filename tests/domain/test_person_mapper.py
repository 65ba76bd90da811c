"""Tests for the person mapper and the mapper registry."""

import logging
from datetime import date
from unittest.mock import patch

import pytest

from src.domain.answer_tree import AnswerNode, AnswerTree, TypedValue
from src.domain.enums import AdministrativeGender, ContactPointUse, RecordKind
from src.domain.mappers import PersonMapper, get_mapper
from src.domain.paths import resolve, resolve_scalar
from src.domain.ports import UnsupportedRecordKindError
from src.domain.records import Coding, PersonRecord


class TestRegistry:
    """Test suite for get_mapper."""

    @pytest.mark.parametrize("kind", ["person", "Practitioner", RecordKind.PERSON])
    def test_accepts_slug_resource_type_or_enum(self, kind):
        assert isinstance(get_mapper(kind), PersonMapper)

    def test_unknown_kind(self):
        with pytest.raises(UnsupportedRecordKindError) as exc_info:
            get_mapper("Patient")

        assert exc_info.value.kind == "Patient"


class TestPersonForward:
    """Test suite for PersonRecord -> answer tree."""

    def test_top_level_layout(self, person):
        tree = get_mapper(RecordKind.PERSON).to_tree(person)

        assert [node.link_id for node in tree.children] == [
            "name", "name",
            "identifier", "identifier", "identifier",
            "telecom", "telecom",
            "address",
            "gender", "birthDate", "active",
        ]

    def test_gender_is_coding_with_canonical_system(self, person):
        tree = get_mapper(RecordKind.PERSON).to_tree(person)

        coding = resolve_scalar(tree, "gender").answers[0].value_coding

        assert coding == Coding(
            system="http://hl7.org/fhir/administrative-gender",
            code="female",
            display="Female",
        )

    def test_given_names_share_one_leaf(self, person):
        tree = get_mapper(RecordKind.PERSON).to_tree(person)
        official = resolve(tree, "name")[0]

        given = resolve_scalar(tree, "name.given", parent=official)

        assert [a.value_string for a in given.answers] == ["Jane", "Quinn"]

    def test_absent_fields_produce_no_nodes(self):
        tree = get_mapper(RecordKind.PERSON).to_tree(PersonRecord(name=[{"family": "Smith"}]))

        assert [node.link_id for node in tree.children] == ["name"]
        assert [child.link_id for child in tree.children[0].children] == ["name.family"]

    def test_nodes_labelled_from_schema(self, person):
        tree = get_mapper(RecordKind.PERSON).to_tree(person)
        name = resolve(tree, "name")[0]

        assert name.text == "Name"
        assert resolve_scalar(tree, "name.family", parent=name).text == "Family Name"

    def test_three_identifiers_in_source_order(self, person):
        mapper = get_mapper(RecordKind.PERSON)

        tree = mapper.to_tree(person)
        groups = resolve(tree, "identifier")
        values = [resolve_scalar(tree, "identifier.value", parent=g).answers[0].value_string for g in groups]

        assert values == ["1234567890", "LIC-1", "EMP-7"]
        assert [i.value for i in mapper.from_tree(tree).identifier] == values


class TestMapperLogging:
    """Test suite for debug logging of mapped trees and records."""

    def test_tree_not_serialized_when_debug_off(self, person, caplog):
        caplog.set_level(logging.INFO, logger="src.domain.mappers.base")

        with patch.object(AnswerTree, "to_wire") as to_wire:
            get_mapper(RecordKind.PERSON).to_tree(person)

        to_wire.assert_not_called()

    def test_tree_logged_at_debug(self, person, caplog):
        caplog.set_level(logging.DEBUG, logger="src.domain.mappers.base")

        get_mapper(RecordKind.PERSON).to_tree(person)

        assert any("Mapped Practitioner to answer tree" in message for message in caplog.messages)


class TestPersonReverse:
    """Test suite for answer tree -> PersonRecord."""

    def test_contact_fields_do_not_cross_bind(self):
        tree = AnswerTree(children=[
            AnswerNode.group("telecom", [
                AnswerNode.leaf("telecom.value", "555-0100"),
                AnswerNode.leaf("telecom.use", TypedValue(value_coding=Coding(code="work"))),
            ]),
            AnswerNode.group("telecom", [AnswerNode.leaf("telecom.value", "555-0199")]),
        ])

        person = get_mapper(RecordKind.PERSON).from_tree(tree)

        assert person.telecom[0].use == ContactPointUse.WORK
        assert person.telecom[1].use is None

    def test_code_from_plain_string_accepted(self):
        tree = AnswerTree(children=[AnswerNode.leaf("gender", "male")])

        assert get_mapper(RecordKind.PERSON).from_tree(tree).gender == AdministrativeGender.MALE

    def test_unknown_code_dropped(self):
        tree = AnswerTree(children=[
            AnswerNode.leaf("gender", TypedValue(value_coding=Coding(code="robot"))),
            AnswerNode.leaf("active", True),
        ])

        person = get_mapper(RecordKind.PERSON).from_tree(tree)

        assert person.gender is None
        assert person.active is True

    def test_wrong_value_kind_skipped(self):
        tree = AnswerTree(children=[
            AnswerNode.leaf("birthDate", "15 January 1980"),
            AnswerNode.leaf("active", "yes"),
        ])

        person = get_mapper(RecordKind.PERSON).from_tree(tree)

        assert person.birth_date is None
        assert person.active is None

    def test_blank_leaves_produce_no_field(self):
        tree = AnswerTree(children=[
            AnswerNode.group("name", [AnswerNode.leaf("name.family", "  "), AnswerNode.leaf("name.given", "")]),
            AnswerNode.leaf("birthDate", date(1980, 1, 15)),
        ])

        person = get_mapper(RecordKind.PERSON).from_tree(tree)

        assert person.name == []
        assert person.birth_date == date(1980, 1, 15)

    def test_nested_path_at_root_is_ignored(self):
        tree = AnswerTree(children=[AnswerNode.leaf("name.family", "Smith")])

        assert get_mapper(RecordKind.PERSON).from_tree(tree).name == []

    def test_edits_are_picked_up(self, person):
        mapper = get_mapper(RecordKind.PERSON)
        tree = mapper.to_tree(person)
        tree.children.append(AnswerNode.group("name", [AnswerNode.leaf("name.family", "Jones")]))

        rebuilt = mapper.from_tree(tree)

        assert [n.family for n in rebuilt.name] == ["Smith", "Smith", "Jones"]

    def test_partial_birth_date_round_trip(self):
        mapper = get_mapper(RecordKind.PERSON)
        tree = mapper.to_tree(PersonRecord(birth_date="1970-05"))

        assert resolve_scalar(tree, "birthDate").answers[0].value_date == "1970-05"
        assert tree.to_wire()["item"][0]["answer"] == [{"valueDate": "1970-05"}]
        assert mapper.from_tree(tree).birth_date == "1970-05"

    def test_birth_date_time_answer_skipped(self):
        tree = AnswerTree(children=[
            AnswerNode.leaf("birthDate", TypedValue(value_date_time="1980-01-15T08:00:00Z")),
            AnswerNode.leaf("active", True),
        ])

        person = get_mapper(RecordKind.PERSON).from_tree(tree)

        assert person.birth_date is None
        assert person.active is True
