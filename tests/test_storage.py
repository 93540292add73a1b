"""Tests for the key-value storage layer."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from quotesync.errors import PersistenceError
from quotesync.storage import JsonFileStore, MemoryStore


class TestJsonFileStore:
    """Tests for the durable JSON file store."""

    def test_set_persists_across_instances(self, tmp_home: Path):
        path = tmp_home / "storage.json"
        JsonFileStore(path).set("quotes", [{"text": "A", "category": "X"}])

        reopened = JsonFileStore(path)
        assert reopened.contains("quotes")
        assert reopened.get("quotes") == [{"text": "A", "category": "X"}]
        assert json.loads(path.read_text())["quotes"][0]["text"] == "A"

    def test_missing_key_returns_default(self, tmp_home: Path):
        store = JsonFileStore(tmp_home / "storage.json")
        assert store.get("nope") is None
        assert store.get("nope", "all") == "all"
        assert not store.contains("nope")

    def test_corrupt_file_starts_empty(self, tmp_home: Path):
        """An unreadable document is ignored rather than crashing."""
        path = tmp_home / "storage.json"
        path.write_text("{not json")
        assert JsonFileStore(path).get("quotes") is None

    def test_non_object_document_starts_empty(self, tmp_home: Path):
        path = tmp_home / "storage.json"
        path.write_text("[1, 2, 3]")
        assert not JsonFileStore(path).contains("0")

    def test_delete_removes_key(self, tmp_home: Path):
        path = tmp_home / "storage.json"
        store = JsonFileStore(path)
        store.set("a", 1)
        store.delete("a")
        assert not JsonFileStore(path).contains("a")

    def test_write_failure_raises_persistence_error(self, tmp_home: Path):
        """The value stays in memory even though the write failed."""
        store = JsonFileStore(tmp_home / "storage.json")
        with patch("quotesync.storage.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(PersistenceError, match="disk full"):
                store.set("a", 1)
        assert store.get("a") == 1
        assert not list(tmp_home.glob(".storage-*.tmp"))


class TestMemoryStore:
    """Tests for the session-scoped store."""

    def test_get_set_contains(self):
        store = MemoryStore()
        store.set("lastViewedQuote", {"text": "A", "category": "X"})
        assert store.contains("lastViewedQuote")
        assert store.get("lastViewedQuote")["text"] == "A"

    def test_clear_ends_session(self):
        store = MemoryStore({"a": 1})
        store.clear()
        assert not store.contains("a")
