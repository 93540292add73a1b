"""
Backup ledger -- the single pre-sync snapshot that undo restores.

Exactly one snapshot is retained; taking a new one discards the old.
When given a durable store the snapshot is mirrored there so undo
survives a restart of the CLI.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional

from pydantic import ValidationError

from .errors import PersistenceError
from .models import Quote, Snapshot
from .storage import KeyValueStore

logger = logging.getLogger("quotesync.ledger")

BACKUP_KEY = "lastBackup"


class BackupLedger:
    """Holds the most recent pre-sync snapshot.

    Args:
        storage: Optional durable store to mirror the snapshot into.
    """

    def __init__(self, storage: Optional[KeyValueStore] = None):
        self._storage = storage
        self._snapshot: Optional[Snapshot] = self._load()

    def _load(self) -> Optional[Snapshot]:
        if self._storage is None:
            return None
        raw = self._storage.get(BACKUP_KEY)
        if raw is None:
            return None
        try:
            return Snapshot.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable backup: %s", exc)
            return None

    def retain(self, quotes: Iterable[Quote]) -> Snapshot:
        """Take a snapshot of quotes, replacing any previous one.

        A failure to mirror the snapshot to storage is logged; the
        in-memory snapshot is still retained.
        """
        snapshot = Snapshot(quotes=tuple(quotes))
        self._snapshot = snapshot
        if self._storage is not None:
            try:
                self._storage.set(
                    BACKUP_KEY, snapshot.model_dump(mode="json")
                )
            except PersistenceError as exc:
                logger.warning("Could not persist backup snapshot: %s", exc)
        return snapshot

    def latest(self) -> Optional[Snapshot]:
        """Return the retained snapshot, if any."""
        return self._snapshot

    def has_backup(self) -> bool:
        return self._snapshot is not None

    def clear(self) -> None:
        """Forget the retained snapshot."""
        self._snapshot = None
        if self._storage is not None:
            try:
                self._storage.delete(BACKUP_KEY)
            except PersistenceError as exc:
                logger.warning("Could not delete backup snapshot: %s", exc)
