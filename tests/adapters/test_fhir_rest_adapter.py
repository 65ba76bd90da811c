"""Tests for the FHIR REST storage adapter.

The HTTP layer is mocked at the ``requests.Session`` boundary.
"""

import json
from unittest.mock import MagicMock

import pytest
import requests

from src.adapters.storage.fhir_rest_adapter import FHIRRestAdapter
from src.domain.enums import RecordKind
from src.domain.guardrails import RetryPolicy
from src.domain.ports import NetworkError, PersistenceError
from src.domain.records import PersonRecord
from src.infrastructure.config_manager import ServerConfig

BASE_URL = "https://fhir.example.org/R4"


def _response(status_code: int, body=None, text: str = ""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.text = text or (json.dumps(body) if body is not None else "")
    if body is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = body
    return response


@pytest.fixture
def mock_session():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def adapter(mock_session):
    config = ServerConfig(base_url=BASE_URL + "/", timeout=5.0, auth_token="s3cret")
    return FHIRRestAdapter(config, policy=RetryPolicy(base_delay=0.0, max_delay=0.0), session=mock_session)


class TestFHIRRestAdapterRequests:
    """Test suite for single-attempt calls."""

    def test_session_headers(self, adapter, mock_session):
        assert mock_session.headers["Content-Type"] == "application/fhir+json"
        assert mock_session.headers["Accept"] == "application/fhir+json"
        assert mock_session.headers["Authorization"] == "Bearer s3cret"

    @pytest.mark.asyncio
    async def test_get(self, adapter, mock_session, person):
        mock_session.request.return_value = _response(200, person.to_fhir())

        fetched = await adapter.get(RecordKind.PERSON, "pr-1")

        assert fetched == person
        mock_session.request.assert_called_once_with(
            "GET", f"{BASE_URL}/Practitioner/pr-1", data=None, timeout=5.0
        )

    @pytest.mark.asyncio
    async def test_get_accepts_partial_dates_and_display_only_references(self, adapter, mock_session):
        mock_session.request.return_value = _response(200, {
            "resourceType": "PractitionerRole",
            "id": "role-9",
            "practitioner": {"display": "Dr Who"},
            "period": {"start": "2020-01-01T09:30:00Z", "end": "2021"},
        })

        role = await adapter.get(RecordKind.ROLE_ASSIGNMENT, "role-9")

        assert role.practitioner.display == "Dr Who"
        assert role.period.end == "2021"

    @pytest.mark.asyncio
    async def test_get_accepts_year_only_birth_date(self, adapter, mock_session):
        mock_session.request.return_value = _response(
            200, {"resourceType": "Practitioner", "id": "1", "birthDate": "1970"}
        )

        person = await adapter.get(RecordKind.PERSON, "1")

        assert person.birth_date == "1970"

    @pytest.mark.asyncio
    async def test_create_posts_without_id(self, adapter, mock_session, organization):
        mock_session.request.return_value = _response(201, organization.to_fhir())

        created = await adapter.create(organization.with_id(None))

        method, url = mock_session.request.call_args.args
        sent = json.loads(mock_session.request.call_args.kwargs["data"])
        assert (method, url) == ("POST", f"{BASE_URL}/Organization")
        assert "id" not in sent
        assert created.id == "org-1"

    @pytest.mark.asyncio
    async def test_update_puts_to_record_url(self, adapter, mock_session, location):
        mock_session.request.return_value = _response(200, location.to_fhir())

        await adapter.update(location)

        method, url = mock_session.request.call_args.args
        assert (method, url) == ("PUT", f"{BASE_URL}/Location/loc-1")

    @pytest.mark.asyncio
    async def test_update_without_id(self, adapter):
        with pytest.raises(PersistenceError):
            await adapter.update(PersonRecord())

    @pytest.mark.asyncio
    async def test_error_status(self, adapter, mock_session):
        mock_session.request.return_value = _response(404, text='{"resourceType": "OperationOutcome"}')

        with pytest.raises(PersistenceError) as exc_info:
            await adapter.get("person", "missing")

        assert exc_info.value.status_code == 404
        assert "OperationOutcome" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_connection_error(self, adapter, mock_session):
        mock_session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(NetworkError):
            await adapter.get("person", "pr-1")

    @pytest.mark.asyncio
    async def test_non_json_body(self, adapter, mock_session):
        mock_session.request.return_value = _response(200, text="<html>")

        with pytest.raises(PersistenceError):
            await adapter.get("person", "pr-1")

    @pytest.mark.asyncio
    async def test_unreadable_resource(self, adapter, mock_session):
        mock_session.request.return_value = _response(200, {"resourceType": "Organization", "name": "GH"})

        with pytest.raises(PersistenceError):
            await adapter.get("person", "pr-1")


class TestFHIRRestAdapterSave:
    """Test suite for retried saves."""

    @pytest.mark.asyncio
    async def test_save_with_id_updates(self, adapter, mock_session, person):
        mock_session.request.return_value = _response(200, person.to_fhir())

        await adapter.save(person)

        assert mock_session.request.call_args.args[0] == "PUT"

    @pytest.mark.asyncio
    async def test_save_without_id_creates(self, adapter, mock_session, person):
        mock_session.request.return_value = _response(201, person.to_fhir())

        saved = await adapter.save(person.with_id(None))

        assert mock_session.request.call_args.args[0] == "POST"
        assert saved.id == "pr-1"

    @pytest.mark.asyncio
    async def test_save_retries_server_errors(self, adapter, mock_session, person):
        mock_session.request.side_effect = [
            _response(503, text="busy"),
            _response(500, text="oops"),
            _response(200, person.to_fhir()),
        ]

        saved = await adapter.save(person)

        assert saved == person
        assert mock_session.request.call_count == 3

    @pytest.mark.asyncio
    async def test_save_does_not_retry_client_errors(self, adapter, mock_session, person):
        mock_session.request.return_value = _response(400, text="invalid")

        with pytest.raises(PersistenceError) as exc_info:
            await adapter.save(person)

        assert mock_session.request.call_count == 1
        assert exc_info.value.status_code == 400
        assert "Operation failed" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_save_exhausted_network_errors(self, adapter, mock_session, person):
        mock_session.request.side_effect = requests.Timeout("timed out")

        with pytest.raises(NetworkError) as exc_info:
            await adapter.save(person)

        assert mock_session.request.call_count == 3
        assert "after 3 attempts" in str(exc_info.value)
