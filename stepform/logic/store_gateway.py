"""Boundary between the session engine and persistence.

``StoreGateway`` is the async contract the controller and listing consume.
Three implementations are provided:

- ``InMemoryStoreGateway``: insertion-ordered dict, for tests and demos.
- ``RepositoryStoreGateway``: the SQL repository, run in worker threads.
- ``HttpStoreGateway``: the form service over HTTP (``/forms``, ``/form``).

All of them share the same semantics: ``create_or_update`` without an
identifier always creates a record; with one it overwrites the full answer
mapping (last write wins, no merge). ``fetch`` and ``delete`` raise
``NotFound`` for unknown identifiers.
"""

from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Mapping, Optional, Protocol
from urllib.parse import quote

import anyio
import httpx
from sqlalchemy.exc import SQLAlchemyError

from stepform.config import AppConfig
from stepform.logic import repository_forms
from stepform.logic.catalog import is_answer_key
from stepform.logic.errors import NotFound, TransportFailure
from stepform.logic.session_state import Session

logger = logging.getLogger(__name__)


class StoreGateway(Protocol):
    async def list(self) -> List[Session]: ...

    async def create_or_update(self, identifier: Optional[str], answers: Mapping[str, str]) -> str: ...

    async def fetch(self, identifier: str) -> Session: ...

    async def delete(self, identifier: str) -> None: ...


def _session_from_record(identifier: str, data: object) -> Session:
    if not isinstance(data, dict):
        raise TransportFailure(f"form {identifier} data is not an object")
    answers = {str(k): v for k, v in data.items() if is_answer_key(str(k)) and isinstance(v, str)}
    return Session(identifier=identifier, answers=answers)


def _form_path(identifier: str) -> str:
    # ids are opaque; "/" or "?" must not change the addressed resource
    return "/form/" + quote(identifier, safe="")


class InMemoryStoreGateway:
    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, str]] = {}

    async def list(self) -> List[Session]:
        return [Session(identifier=k, answers=v) for k, v in self._records.items()]

    async def create_or_update(self, identifier: Optional[str], answers: Mapping[str, str]) -> str:
        resolved = identifier or str(uuid.uuid4())
        self._records[resolved] = dict(answers)
        return resolved

    async def fetch(self, identifier: str) -> Session:
        if identifier not in self._records:
            raise NotFound(identifier)
        return Session(identifier=identifier, answers=self._records[identifier])

    async def delete(self, identifier: str) -> None:
        if self._records.pop(identifier, None) is None:
            raise NotFound(identifier)


class RepositoryStoreGateway:
    """Gateway over the SQL repository; blocking calls run off the event loop.

    Database errors surface as ``TransportFailure`` like an unreachable HTTP
    store would.
    """

    async def _run(self, func, *args):
        try:
            return await anyio.to_thread.run_sync(func, *args)
        except SQLAlchemyError as e:
            logger.error("store_db_error op=%s error=%s", func.__name__, e)
            raise TransportFailure(f"{func.__name__} failed: {e}") from e

    async def list(self) -> List[Session]:
        rows = await self._run(repository_forms.list_forms)
        return [_session_from_record(str(r["uuid"]), r["data"]) for r in rows]

    async def create_or_update(self, identifier: Optional[str], answers: Mapping[str, str]) -> str:
        form_id, _created = await self._run(repository_forms.upsert_form, identifier, dict(answers))
        return form_id

    async def fetch(self, identifier: str) -> Session:
        data = await self._run(repository_forms.get_form, identifier)
        if data is None:
            raise NotFound(identifier)
        return _session_from_record(identifier, data)

    async def delete(self, identifier: str) -> None:
        deleted = await self._run(repository_forms.delete_form, identifier)
        if not deleted:
            raise NotFound(identifier)


class HttpStoreGateway:
    """Gateway speaking the form service's JSON contract.

    404 maps to ``NotFound``; connection errors, timeouts, other non-2xx
    statuses and undecodable bodies map to ``TransportFailure``. Timeouts are
    configured on the client, not retried here.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    @classmethod
    def from_config(cls, cfg: AppConfig) -> "HttpStoreGateway":
        """Build a gateway for the service at ``cfg.client.base_url``."""
        client = httpx.AsyncClient(base_url=cfg.client.base_url, timeout=cfg.client.timeout_seconds)
        return cls(client)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, identifier: Optional[str] = None, **kwargs) -> object:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("store_transport_error method=%s url=%s error=%s", method, url, e)
            raise TransportFailure(f"{method} {url} failed: {e}") from e
        if resp.status_code == 404 and identifier is not None:
            raise NotFound(identifier)
        if resp.status_code >= 400:
            logger.error("store_http_error method=%s url=%s status=%s", method, url, resp.status_code)
            raise TransportFailure(f"{method} {url} returned {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise TransportFailure(f"{method} {url} returned a non-JSON body") from e

    async def list(self) -> List[Session]:
        body = await self._request("GET", "/forms")
        if not isinstance(body, list):
            raise TransportFailure("GET /forms did not return an array")
        sessions = []
        for item in body:
            if not isinstance(item, dict) or not item.get("uuid") or not isinstance(item.get("data"), dict):
                logger.warning("store_list_item_skipped item=%r", item)
                continue
            sessions.append(_session_from_record(str(item["uuid"]), item.get("data")))
        return sessions

    async def create_or_update(self, identifier: Optional[str], answers: Mapping[str, str]) -> str:
        payload: Dict[str, object] = {"data": dict(answers)}
        if identifier is not None:
            payload["uuid"] = identifier
        body = await self._request("POST", "/form", json=payload)
        if not isinstance(body, dict) or not body.get("uuid"):
            raise TransportFailure("POST /form did not return a uuid")
        return str(body["uuid"])

    async def fetch(self, identifier: str) -> Session:
        body = await self._request("GET", _form_path(identifier), identifier=identifier)
        if not isinstance(body, dict):
            raise TransportFailure(f"GET {_form_path(identifier)} did not return an object")
        return _session_from_record(identifier, body.get("data"))

    async def delete(self, identifier: str) -> None:
        await self._request("DELETE", _form_path(identifier), identifier=identifier)


__all__ = [
    "StoreGateway",
    "InMemoryStoreGateway",
    "RepositoryStoreGateway",
    "HttpStoreGateway",
]
