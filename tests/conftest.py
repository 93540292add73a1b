"""Shared test fixtures for quotesync."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import pytest

from quotesync.models import Quote
from quotesync.remote import RemoteClient
from quotesync.storage import MemoryStore
from quotesync.store import RecordStore


class FakeRemote(RemoteClient):
    """In-memory remote that records what it was asked to do.

    Set ``gate`` to an asyncio.Event to hold list_remote() until the
    test releases it.
    """

    def __init__(self, quotes=None, error: Optional[Exception] = None):
        self.quotes = [Quote.model_validate(q) for q in (quotes or [])]
        self.error = error
        self.submit_error: Optional[Exception] = None
        self.submitted: list[Quote] = []
        self.calls = 0
        self.gate: Optional[asyncio.Event] = None

    @property
    def name(self) -> str:
        return "fake-remote"

    async def list_remote(self, limit: int) -> list[Quote]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return list(self.quotes[:limit])

    async def submit_record(self, record: Quote) -> None:
        if self.submit_error is not None:
            raise self.submit_error
        self.submitted.append(record)


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    """Provide a temporary quotesync home directory."""
    home = tmp_path / ".quotesync"
    home.mkdir()
    return home


@pytest.fixture
def storage() -> MemoryStore:
    """Durable-storage stand-in kept in memory."""
    return MemoryStore()


@pytest.fixture
def store(storage: MemoryStore) -> RecordStore:
    """A record store starting from an empty collection."""
    return RecordStore(storage, defaults=[])


@pytest.fixture
def remote() -> FakeRemote:
    """A remote with no quotes."""
    return FakeRemote()
