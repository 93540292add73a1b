"""
Application wiring -- build every component for one home directory.

    <home>/config.yaml        configuration
    <home>/storage.json       quotes, filter, backup, pending conflicts
    <home>/logs/quotesync.log log output
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from .browse import QuoteBrowser
from .config import QuoteSyncConfig, load_config, resolve_home
from .engine import SyncEngine
from .ledger import BackupLedger
from .remote import HttpRemoteClient, RemoteClient
from .scheduler import Scheduler
from .storage import JsonFileStore, KeyValueStore, MemoryStore
from .store import RecordStore

logger = logging.getLogger("quotesync.app")

STORAGE_FILENAME = "storage.json"
LOG_DIR = "logs"
LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


class QuoteSyncApp:
    """All quotesync components, wired together.

    Args:
        home: Home directory. Defaults to $QUOTESYNC_HOME or ~/.quotesync.
        remote: Override the remote client (tests, offline use).
        session: Override the session store.
    """

    def __init__(
        self,
        home: Optional[Path] = None,
        remote: Optional[RemoteClient] = None,
        session: Optional[KeyValueStore] = None,
    ):
        self.home = resolve_home(home)
        self.home.mkdir(parents=True, exist_ok=True)
        self.config: QuoteSyncConfig = load_config(self.home)

        self.storage = JsonFileStore(self.home / STORAGE_FILENAME)
        self.session = session if session is not None else MemoryStore()
        self.store = RecordStore(self.storage)
        self.ledger = BackupLedger(self.storage)
        self.remote = remote or HttpRemoteClient(
            endpoint=self.config.remote_url,
            category=self.config.remote_category,
            timeout=self.config.request_timeout_seconds,
        )
        self.engine = SyncEngine(
            self.store,
            self.remote,
            ledger=self.ledger,
            storage=self.storage,
            fetch_limit=self.config.fetch_limit,
            default_category=self.config.default_category,
        )
        self.scheduler = Scheduler(self.engine)
        self.browser = QuoteBrowser(self.store, self.storage, self.session)


def setup_logging(home: Path, level: int = logging.INFO) -> Path:
    """Send log output for the quotesync loggers to <home>/logs.

    Returns:
        Path of the log file.
    """
    log_dir = home / LOG_DIR
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "quotesync.log"

    root = logging.getLogger("quotesync")
    for handler in root.handlers:
        if getattr(handler, "baseFilename", None) == os.path.abspath(log_file):
            return log_file

    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
    return log_file


def get_app(home: Optional[Path] = None) -> QuoteSyncApp:
    """Build the application for a home directory.

    Args:
        home: Override home directory.

    Returns:
        A fully wired QuoteSyncApp.
    """
    app = QuoteSyncApp(home=home)
    logger.debug("quotesync app loaded from %s", app.home)
    return app
