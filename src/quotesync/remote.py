"""
Remote clients -- where server quotes come from.

The engine only sees the RemoteClient interface: list quotes, submit a
quote. Neither call retries or touches local state; retry policy lives
with the scheduler that decides when the next pass runs.

HttpRemoteClient talks to a JSONPlaceholder-style collection endpoint:

    GET  <endpoint>?_limit=N   -> [{"id": 1, "title": "...", ...}, ...]
    POST <endpoint>            <- {"text": "...", "category": "..."}
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any

import requests

from .errors import MalformedRemoteRecord, RemoteUnavailable
from .models import Quote

logger = logging.getLogger("quotesync.remote")

DEFAULT_ENDPOINT = "https://jsonplaceholder.typicode.com/posts"
DEFAULT_REMOTE_CATEGORY = "Server"


class RemoteClient(ABC):
    """Abstract remote quote source."""

    @abstractmethod
    async def list_remote(self, limit: int) -> list[Quote]:
        """Fetch up to ``limit`` remote quotes.

        Raises:
            RemoteUnavailable: On transport failure, non-2xx status or an
                unreadable payload.
        """

    @abstractmethod
    async def submit_record(self, record: Quote) -> None:
        """Push one locally created quote.

        Raises:
            RemoteUnavailable: If the remote did not accept it.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable remote name."""


def map_remote_item(item: Any, category: str) -> Quote:
    """Map one remote item into a Quote.

    The item's ``title`` becomes the text and ``category`` is the fixed
    label given for every server quote.

    Raises:
        MalformedRemoteRecord: If the item has no usable title or id, or
            the result is not a valid quote.
    """
    if not isinstance(item, dict):
        raise MalformedRemoteRecord("remote item is not an object", item)
    if item.get("id") is None:
        raise MalformedRemoteRecord("remote item has no id", item)
    title = item.get("title")
    if not isinstance(title, str) or not title.strip():
        raise MalformedRemoteRecord("remote item has no title", item)
    try:
        return Quote(text=title, category=category)
    except ValueError as exc:
        raise MalformedRemoteRecord(f"remote item is not a valid quote: {exc}", item) from exc


class HttpRemoteClient(RemoteClient):
    """Remote client over HTTP using requests.

    Blocking requests calls run on a worker thread so the event loop
    keeps serving other work while a round trip is outstanding.

    Args:
        endpoint: Collection URL for GET and POST.
        category: Label given to every quote fetched from the server.
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_ENDPOINT,
        category: str = DEFAULT_REMOTE_CATEGORY,
        timeout: float = 10.0,
    ):
        self.endpoint = endpoint
        self.category = category
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.endpoint

    def _request(self, method: str, **kwargs: Any) -> requests.Response:
        """Make one HTTP call, mapping every failure to RemoteUnavailable."""
        try:
            resp = requests.request(
                method, self.endpoint, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise RemoteUnavailable(
                f"{method} {self.endpoint} failed: {exc}"
            ) from exc

        if not 200 <= resp.status_code < 300:
            raise RemoteUnavailable(
                f"{method} {self.endpoint}: HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp

    def _fetch(self, limit: int) -> list[Quote]:
        resp = self._request("GET", params={"_limit": limit})
        try:
            data = resp.json()
        except ValueError as exc:
            raise RemoteUnavailable(
                f"GET {self.endpoint}: response is not JSON"
            ) from exc
        if not isinstance(data, list):
            raise RemoteUnavailable(
                f"GET {self.endpoint}: expected a list, got {type(data).__name__}"
            )

        quotes = []
        for item in data[:limit]:
            try:
                quotes.append(map_remote_item(item, self.category))
            except MalformedRemoteRecord as exc:
                logger.warning("Skipping remote item: %s", exc)
        return quotes

    def _submit(self, record: Quote) -> None:
        self._request(
            "POST",
            json=record.to_dict(),
            headers={"Content-Type": "application/json; charset=UTF-8"},
        )
        logger.info("Quote posted to %s: %s", self.endpoint, record.text)

    async def list_remote(self, limit: int) -> list[Quote]:
        return await asyncio.to_thread(self._fetch, limit)

    async def submit_record(self, record: Quote) -> None:
        await asyncio.to_thread(self._submit, record)
