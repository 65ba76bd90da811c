"""FHIR REST Storage Adapter.

This adapter implements the RecordStoragePort contract over a FHIR REST API:
``GET <kind>/<id>``, ``POST <kind>`` and ``PUT <kind>/<id>`` with
``application/fhir+json`` bodies.

Security Impact:
    - Bearer tokens come from ServerConfig (SecretStr) and are never logged
    - Error bodies are truncated before they are attached to exceptions
    - Only validated DomainRecord instances are sent

Architecture:
    - Implements RecordStoragePort (Hexagonal Architecture)
    - Blocking ``requests`` calls run in a worker thread (``asyncio.to_thread``)
    - ``save`` is wrapped in the retry policy; ``get``/``create``/``update``
      are single attempts
"""

import asyncio
import json
import logging
from typing import Any, Optional

import requests
from pydantic import ValidationError as PydanticValidationError

from src.domain.enums import RecordKind
from src.domain.guardrails import RetryPolicy, get_retry_error_message, retry
from src.domain.ports import NetworkError, PersistenceError, RecordStoragePort
from src.domain.records import RECORD_TYPES, DomainRecord
from src.infrastructure.config_manager import ServerConfig

logger = logging.getLogger(__name__)

FHIR_JSON = "application/fhir+json"
MAX_ERROR_BODY = 500


class FHIRRestAdapter(RecordStoragePort):
    """FHIR REST implementation of RecordStoragePort.

    Parameters:
        server_config: Base URL, timeout and credentials
        policy: Retry policy applied to ``save`` (defaults to ``RetryPolicy()``)
        session: Optional ``requests.Session`` (a new one is created if omitted)

    Example Usage:
        ```python
        from src.infrastructure.config_manager import ConfigManager

        config = ConfigManager.from_environment()
        adapter = FHIRRestAdapter(
            config.get_server_config(),
            policy=config.get_retry_config().to_policy(),
        )
        person = await adapter.get(RecordKind.PERSON, "123")
        saved = await adapter.save(person)
        ```
    """

    def __init__(
        self,
        server_config: ServerConfig,
        policy: Optional[RetryPolicy] = None,
        session: Optional[requests.Session] = None,
    ):
        self.server_config = server_config
        self.policy = policy or RetryPolicy()
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": FHIR_JSON, "Content-Type": FHIR_JSON})
        self._session.headers.update(server_config.auth_headers())

    def _url(self, *parts: str) -> str:
        return "/".join([self.server_config.base_url, *parts])

    def _request(self, method: str, url: str, payload: Optional[dict] = None) -> dict[str, Any]:
        """Perform one blocking HTTP call and return the decoded JSON body.

        Raises:
            NetworkError: If no response was received
            PersistenceError: For non-2xx responses or non-JSON bodies
        """
        body = json.dumps(payload) if payload is not None else None
        try:
            response = self._session.request(method, url, data=body, timeout=self.server_config.timeout)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise NetworkError(f"{method} {url} failed: {type(e).__name__}") from e
        except requests.RequestException as e:
            raise NetworkError(f"{method} {url} failed: {str(e)}") from e

        if not response.ok:
            text = (response.text or "")[:MAX_ERROR_BODY]
            raise PersistenceError(
                f"{method} {url} returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=text,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PersistenceError(
                f"{method} {url} returned a non-JSON body",
                status_code=response.status_code,
            ) from e
        if not isinstance(data, dict):
            raise PersistenceError(f"{method} {url} returned {type(data).__name__}, expected a resource")
        return data

    async def _call(self, method: str, url: str, payload: Optional[dict] = None) -> dict[str, Any]:
        logger.debug(f"{method} {url}")
        return await asyncio.to_thread(self._request, method, url, payload)

    @staticmethod
    def _to_record(kind: RecordKind, data: dict) -> DomainRecord:
        try:
            return RECORD_TYPES[kind].from_fhir(data)
        except (PydanticValidationError, ValueError) as e:
            raise PersistenceError(f"Server returned a {kind.value} that could not be read: {str(e)}") from e

    async def get(self, kind, record_id: str) -> DomainRecord:
        record_kind = RecordKind.parse(kind)
        data = await self._call("GET", self._url(record_kind.value, record_id))
        return self._to_record(record_kind, data)

    async def create(self, record: DomainRecord) -> DomainRecord:
        payload = record.to_fhir()
        payload.pop("id", None)
        data = await self._call("POST", self._url(record.kind.value), payload)
        created = self._to_record(record.kind, data)
        logger.info(f"Created {record.kind.value}/{created.id}")
        return created

    async def update(self, record: DomainRecord) -> DomainRecord:
        if not record.id:
            raise PersistenceError(f"Cannot update a {record.kind.value} without an id")
        data = await self._call("PUT", self._url(record.kind.value, record.id), record.to_fhir())
        updated = self._to_record(record.kind, data)
        logger.info(f"Updated {record.kind.value}/{updated.id}")
        return updated

    async def save(self, record: DomainRecord) -> DomainRecord:
        """Create or update ``record``, retrying transient failures.

        Raises:
            NetworkError: If the last attempt never reached the server
            PersistenceError: If the server rejected the record or retries ran out
        """
        result = await retry(lambda: RecordStoragePort.save(self, record), self.policy)
        if result.success:
            return result.value

        error = result.error
        hint = get_retry_error_message(error, result.attempts, self.policy.max_attempts)
        message = f"{hint} ({error})"
        if isinstance(error, NetworkError):
            raise NetworkError(message) from error
        if isinstance(error, PersistenceError):
            raise PersistenceError(message, status_code=error.status_code, body=error.body) from error
        raise error

    def close(self) -> None:
        self._session.close()
