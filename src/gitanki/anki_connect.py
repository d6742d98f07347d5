"""Thin client for the AnkiConnect HTTP automation interface.

Every call is a single POST of a JSON envelope ``{action, version, params}``
to the local AnkiConnect endpoint.  The reply is an envelope
``{result, error}`` where a non-null ``error`` means the call failed whatever
``result`` holds.

Failures are split three ways so callers can decide what is fatal:

* ``AnkiConnectionError`` - the endpoint could not be reached at all.
* ``AnkiProtocolError`` - the reply was not a JSON envelope, or AnkiConnect
  reported an error.
* ``AnkiShapeError`` - the envelope was fine but ``result`` did not have the
  shape the action promises.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

LOGGER = logging.getLogger(__name__)

DEFAULT_URL = "http://localhost:8765"
API_VERSION = 6


class AnkiConnectError(Exception):
    """Base class for AnkiConnect failures."""


class AnkiConnectionError(AnkiConnectError):
    """The AnkiConnect endpoint could not be reached."""


class AnkiProtocolError(AnkiConnectError):
    """The reply was malformed or carried an AnkiConnect error."""


class AnkiShapeError(AnkiProtocolError):
    """The ``result`` of a successful call had an unexpected shape."""


class RpcRequest(BaseModel):
    """Outgoing AnkiConnect envelope."""

    action: str
    version: int = API_VERSION
    params: Dict[str, Any] = Field(default_factory=dict)


class RpcResponse(BaseModel):
    """Incoming AnkiConnect envelope."""

    result: Any = None
    error: Optional[str] = None


_CARD_IDS = TypeAdapter(List[int])
_CARD_RECORDS = TypeAdapter(List[Dict[str, Any]])


class AnkiConnectClient:
    """Synchronous AnkiConnect client.

    ``session`` only needs a ``post`` method compatible with
    ``requests.Session.post`` so tests can pass a stub.  No timeout is applied
    unless one is given and nothing is retried.
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        session: object | None = None,
        timeout: float | None = None,
    ) -> None:
        self.url = url
        self.session = session or requests.Session()
        self.timeout = timeout

    def invoke(self, action: str, params: Dict[str, Any] | None = None) -> Any:
        """Run ``action`` and return its ``result`` verbatim."""

        request = RpcRequest(action=action, params=params or {})
        LOGGER.debug("AnkiConnect request: action=%s params=%s", action, request.params)
        try:
            response = self.session.post(
                self.url,
                json=request.model_dump(),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise AnkiConnectionError(
                f"failed to send {action!r} to AnkiConnect "
                f"(is Anki running with AnkiConnect on {self.url}?): {exc}"
            ) from exc

        try:
            envelope = RpcResponse.model_validate_json(response.content)
        except ValidationError as exc:
            raise AnkiProtocolError(
                f"failed to decode {action!r} response "
                f"(HTTP {getattr(response, 'status_code', '?')}): {exc}"
            ) from exc

        if envelope.error is not None:
            raise AnkiProtocolError(f"AnkiConnect error for {action!r}: {envelope.error}")
        return envelope.result

    def version(self) -> str:
        return describe_version(self.invoke("version"))

    def find_cards(self, query: str) -> List[int]:
        result = self.invoke("findCards", {"query": query})
        try:
            return _CARD_IDS.validate_python(result)
        except ValidationError as exc:
            raise AnkiShapeError(
                f"unexpected response format for findCards result: {type(result).__name__}"
            ) from exc

    def card_info(self, card_id: int) -> Dict[str, Any]:
        """Return the raw ``cardsInfo`` record for a single card."""

        result = self.invoke("cardsInfo", {"cards": [card_id]})
        try:
            records = _CARD_RECORDS.validate_python(result)
        except ValidationError as exc:
            raise AnkiShapeError(
                f"unexpected card info format for card {card_id}: {type(result).__name__}"
            ) from exc
        if not records:
            raise AnkiShapeError(f"no card info returned for card {card_id}")
        return records[0]


def describe_version(result: Any) -> str:
    """Human-readable version from whatever ``version`` returned."""

    if isinstance(result, dict):
        result = result.get("version")
    if isinstance(result, bool):
        return "unknown"
    if isinstance(result, (int, float)):
        return f"{result:.0f}"
    if isinstance(result, str) and result:
        return result
    return "unknown"


__all__ = [
    "AnkiConnectClient",
    "AnkiConnectError",
    "AnkiConnectionError",
    "AnkiProtocolError",
    "AnkiShapeError",
    "RpcRequest",
    "RpcResponse",
    "describe_version",
]
