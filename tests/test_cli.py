"""Tests for the quotesync command line (HTTP is mocked)."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from quotesync.cli import main
from quotesync.engine import SyncEngine
from quotesync.errors import PersistenceError


def _response(status: int = 200, payload=None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    return resp


SERVER_POSTS = [
    {"id": 1, "title": "Be bold"},
    {"id": 2, "title": "Stay calm"},
]


@pytest.fixture
def home(tmp_home: Path) -> Path:
    """A home whose collection holds one 'Be bold' quote."""
    (tmp_home / "storage.json").write_text(
        json.dumps({"quotes": [{"text": "Be bold", "category": "Motivation"}]})
    )
    return tmp_home


def _run(*args: str):
    return CliRunner().invoke(main, list(args))


def _stored(home: Path) -> list[dict]:
    return json.loads((home / "storage.json").read_text())["quotes"]


class TestQuoteCommands:
    """Tests for show / add / remove / filter / import / export."""

    def test_help(self):
        result = _run("--help")
        assert result.exit_code == 0
        assert "sync" in result.output

    def test_show(self, home: Path):
        result = _run("show", "--home", str(home))
        assert result.exit_code == 0
        assert "Be bold" in result.output

    @pytest.mark.parametrize("count", ["0", "-2"])
    def test_show_rejects_non_positive_count(self, home: Path, count: str):
        result = _run("show", "--home", str(home), "--count", count)
        assert result.exit_code == 2
        assert "Be bold" not in result.output

    def test_add_without_push(self, home: Path):
        result = _run("add", "Keep going", "--home", str(home), "--no-push")
        assert result.exit_code == 0
        assert "New quote added successfully!" in result.output
        assert {"text": "Keep going", "category": "Custom"} in _stored(home)

    def test_add_push_failure_keeps_quote(self, home: Path):
        with patch("quotesync.remote.requests.request", return_value=_response(status=500)):
            result = _run("add", "Keep going", "--home", str(home), "-c", "Grit")
        assert result.exit_code == 0
        assert "Not posted to server" in result.output
        assert {"text": "Keep going", "category": "Grit"} in _stored(home)

    def test_add_empty_is_rejected(self, home: Path):
        result = _run("add", "   ", "--home", str(home))
        assert result.exit_code == 1
        assert "valid quote" in result.output

    def test_remove(self, home: Path):
        assert _run("remove", "be bold", "--home", str(home)).exit_code == 0
        assert _stored(home) == []
        assert _run("remove", "be bold", "--home", str(home)).exit_code == 1

    def test_filter_and_categories(self, home: Path):
        assert _run("filter", "Motivation", "--home", str(home)).exit_code == 0
        result = _run("categories", "--home", str(home))
        assert "Motivation" in result.output
        assert _run("filter", "Nope", "--home", str(home)).exit_code == 1

    def test_import_and_export(self, home: Path, tmp_path: Path):
        source = tmp_path / "in.json"
        source.write_text(json.dumps([{"text": "Stay calm", "category": "Zen"}]))
        result = _run("import", str(source), "--home", str(home))
        assert result.exit_code == 0

        target = tmp_path / "out.json"
        assert _run("export", str(target), "--home", str(home)).exit_code == 0
        assert json.loads(target.read_text()) == [
            {"text": "Be bold", "category": "Motivation"},
            {"text": "Stay calm", "category": "Zen"},
        ]

    def test_import_malformed_is_rejected(self, home: Path, tmp_path: Path):
        source = tmp_path / "bad.json"
        source.write_text(json.dumps([{"text": "Stay calm"}]))
        result = _run("import", str(source), "--home", str(home))
        assert result.exit_code == 1
        assert "Import rejected" in result.output
        assert _stored(home) == [{"text": "Be bold", "category": "Motivation"}]


class TestSyncCommands:
    """Tests for sync / conflicts / resolve / undo / status."""

    def test_sync_applies_remote_and_records_conflict(self, home: Path):
        with patch("quotesync.remote.requests.request", return_value=_response(payload=SERVER_POSTS)):
            result = _run("sync", "--home", str(home))

        assert result.exit_code == 0
        assert "Quotes synced with server!" in result.output
        assert _stored(home) == [
            {"text": "Be bold", "category": "Server"},
            {"text": "Stay calm", "category": "Server"},
        ]

        listing = _run("conflicts", "--home", str(home))
        assert "be bold" in listing.output

    def test_resolve_keep_local_across_invocations(self, home: Path):
        with patch("quotesync.remote.requests.request", return_value=_response(payload=SERVER_POSTS)):
            _run("sync", "--home", str(home))

        result = _run("resolve", "Be bold", "keep-local", "--home", str(home))

        assert result.exit_code == 0
        assert _stored(home)[0] == {"text": "Be bold", "category": "Motivation"}
        assert "No outstanding conflicts" in _run("conflicts", "--home", str(home)).output

    def test_interactive_sync(self, home: Path):
        with patch("quotesync.remote.requests.request", return_value=_response(payload=SERVER_POSTS)):
            result = CliRunner().invoke(
                main, ["sync", "--home", str(home), "-i"], input="keep-local\n"
            )
        assert result.exit_code == 0
        assert _stored(home)[0]["category"] == "Motivation"

    def test_interactive_sync_save_failure_exits_cleanly(self, home: Path):
        with patch("quotesync.remote.requests.request", return_value=_response(payload=SERVER_POSTS)), \
                patch.object(SyncEngine, "resolve", side_effect=PersistenceError("disk full")):
            result = CliRunner().invoke(
                main, ["sync", "--home", str(home), "-i"], input="keep-local\n"
            )
        assert result.exit_code == 1
        assert "Resolved but not saved" in result.output
        assert "disk full" in result.output

    def test_undo_restores_pre_sync_collection(self, home: Path):
        with patch("quotesync.remote.requests.request", return_value=_response(payload=SERVER_POSTS)):
            _run("sync", "--home", str(home))

        result = _run("undo", "--home", str(home))

        assert result.exit_code == 0
        assert _stored(home) == [{"text": "Be bold", "category": "Motivation"}]

    def test_undo_without_sync(self, home: Path):
        result = _run("undo", "--home", str(home))
        assert result.exit_code == 1
        assert "nothing to undo" in result.output

    def test_sync_failure_exits_nonzero(self, home: Path):
        with patch("quotesync.remote.requests.request", return_value=_response(status=503)):
            result = _run("sync", "--home", str(home))
        assert result.exit_code == 1
        assert "Failed to sync with server!" in result.output
        assert _stored(home) == [{"text": "Be bold", "category": "Motivation"}]

    def test_watch_stops_after_count(self, home: Path):
        with patch("quotesync.remote.requests.request", return_value=_response(payload=SERVER_POSTS)):
            result = _run("watch", "--home", str(home), "--interval", "0.01", "--count", "2")
        assert result.exit_code == 0
        assert result.output.count("Quotes synced with server!") == 2

    def test_status(self, home: Path):
        result = _run("status", "--home", str(home))
        assert result.exit_code == 0
        assert "Pending conflicts" in result.output
