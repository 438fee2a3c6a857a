"""HTTP client used for the remote diagnostic fetch."""

from __future__ import annotations

from typing import Any, List, Optional

import httpx

from .exceptions import DecodingError, InvalidURL, NetworkError
from .models import RemoteExpense

DEFAULT_TIMEOUT = 10.0


class HTTPNetworkClient:
    """Fetches and decodes JSON payloads over HTTP(S) with a bounded timeout."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    def fetch_json(self, url: str) -> Any:
        target = _validate_url(url)
        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.get(target)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NetworkError(f"Request to {url} failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise DecodingError(f"Response from {url} is not valid JSON") from exc

    @property
    def timeout(self) -> float:
        return self._timeout


def _validate_url(url: object) -> httpx.URL:
    if not isinstance(url, str) or not url.strip():
        raise InvalidURL(f"Invalid URL: {url!r}")
    try:
        parsed = httpx.URL(url.strip())
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise InvalidURL(f"Invalid URL: {url!r}") from exc
    if parsed.scheme not in {"http", "https"} or not parsed.host:
        raise InvalidURL(f"Invalid URL: {url!r}")
    return parsed


def decode_remote_expenses(payload: Any) -> List[RemoteExpense]:
    """Decode a ``[{"amount": ..., "category": ...}, ...]`` payload."""
    if not isinstance(payload, list):
        raise DecodingError("Expected a list of expense records")
    records: List[RemoteExpense] = []
    for item in payload:
        if not isinstance(item, dict):
            raise DecodingError("Expected each expense record to be an object")
        try:
            records.append(RemoteExpense.from_dict(item))
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            raise DecodingError(f"Malformed expense record: {item!r}") from exc
    return records
