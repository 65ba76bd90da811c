"""Property tests shared by every record mapper.

Each test runs once per record kind against the fully populated sample
records from conftest.
"""

import pytest

from src.domain.answer_tree import AnswerTree
from src.domain.enums import RecordKind, ResponseStatus
from src.domain.mappers import get_mapper
from src.domain.records import RECORD_TYPES
from src.domain.schema import load_schema
from src.domain.validation import validate

ALL_KINDS = list(RecordKind)


@pytest.mark.parametrize("kind", ALL_KINDS, ids=lambda k: k.slug)
class TestMapperProperties:
    """Round trip, idempotence and sparse encoding for every kind."""

    def test_round_trip_restores_record(self, kind, sample_records):
        """Reverse(Forward(record)) equals the record, minus the server id."""
        record = sample_records[kind]
        mapper = get_mapper(kind)

        rebuilt = mapper.from_tree(mapper.to_tree(record))

        assert rebuilt == record.with_id(None)

    def test_forward_is_idempotent(self, kind, sample_records):
        record = sample_records[kind]
        mapper = get_mapper(kind)

        tree = mapper.to_tree(record)
        again = mapper.to_tree(mapper.from_tree(tree))

        assert again == tree

    def test_round_trip_through_wire_format(self, kind, sample_records):
        """The JSON wire form carries everything the reverse mapper needs."""
        record = sample_records[kind]
        mapper = get_mapper(kind)

        payload = mapper.to_tree(record).to_wire()
        rebuilt = mapper.from_tree(AnswerTree.from_wire(payload))

        assert payload["resourceType"] == "QuestionnaireResponse"
        assert rebuilt == record.with_id(None)

    def test_empty_record_maps_to_empty_tree(self, kind):
        mapper = get_mapper(kind)

        tree = mapper.to_tree(RECORD_TYPES[kind]())

        assert tree.is_empty()
        assert mapper.from_tree(tree) == RECORD_TYPES[kind]()

    def test_forward_tree_is_in_progress(self, kind, sample_records):
        tree = get_mapper(kind).to_tree(sample_records[kind])

        assert tree.status == ResponseStatus.IN_PROGRESS
        assert tree.questionnaire == load_schema(kind).url

    def test_forward_does_not_mutate_record(self, kind, sample_records):
        record = sample_records[kind]
        before = record.to_fhir()

        get_mapper(kind).to_tree(record)

        assert record.to_fhir() == before

    def test_reverse_does_not_mutate_tree(self, kind, sample_records):
        mapper = get_mapper(kind)
        tree = mapper.to_tree(sample_records[kind])
        before = tree.to_wire()

        mapper.from_tree(tree)

        assert tree.to_wire() == before

    def test_forward_tree_passes_validation(self, kind, sample_records):
        tree = get_mapper(kind).to_tree(sample_records[kind])

        result = validate(tree, load_schema(kind))

        assert result.is_valid, result.errors

    def test_every_emitted_path_is_in_schema(self, kind, sample_records):
        """Forward paths and schema paths are the same contract."""
        schema = load_schema(kind)
        tree = get_mapper(kind).to_tree(sample_records[kind])

        def check(nodes, items):
            for node in nodes:
                item = next((i for i in items if i.link_id == node.link_id), None)
                assert item is not None, node.link_id
                check(node.children, item.items)

        check(tree.children, schema.items)

    def test_wrong_record_type_maps_to_empty_tree(self, kind, sample_records):
        other = next(k for k in ALL_KINDS if k != kind)

        tree = get_mapper(kind).to_tree(sample_records[other])

        assert tree.is_empty()
