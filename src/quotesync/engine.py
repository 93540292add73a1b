"""
Sync Engine -- one reconciliation pass, start to finish.

    snapshot -> fetch -> classify -> apply (remote wins) -> persist -> notify

The engine owns the idea of "one pass in flight". A pass requested while
another is syncing returns straight away with a rejected outcome; it is
neither queued nor reported as a failure.

Conflicts stay outstanding until the operator resolves them one by one
or undoes the whole pass.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from pydantic import ValidationError

from .errors import (
    NoBackupAvailable,
    PersistenceError,
    ReentrantSyncRejected,
    RemoteUnavailable,
)
from .ledger import BackupLedger
from .models import (
    Conflict,
    PassOutcome,
    PassStatus,
    Quote,
    Resolution,
    Snapshot,
    SubmitOutcome,
    SyncResult,
    SyncState,
    quote_key,
)
from .remote import RemoteClient
from .resolver import classify
from .storage import KeyValueStore
from .store import RecordStore

logger = logging.getLogger("quotesync.engine")

DEFAULT_FETCH_LIMIT = 15
DEFAULT_LOCAL_CATEGORY = "Custom"
PENDING_CONFLICTS_KEY = "pendingConflicts"


class SyncListener:
    """Receives the outcome of every sync pass.

    Subclass and override the hooks you care about. Exactly one hook
    fires per pass that was not rejected.
    """

    def on_sync_result(self, result: SyncResult) -> None:
        """Called when a pass completed."""

    def on_sync_failed(self, message: str) -> None:
        """Called when a pass could not reach the remote."""


class SyncEngine:
    """Orchestrates reconciliation between the local store and a remote.

    Args:
        store: The local record store.
        remote: Remote quote source.
        ledger: Backup ledger for undo. A fresh in-memory one by default.
        storage: Durable store used to keep outstanding conflicts.
        fetch_limit: Maximum remote quotes fetched per pass.
        default_category: Category for locally added quotes.
    """

    def __init__(
        self,
        store: RecordStore,
        remote: RemoteClient,
        ledger: Optional[BackupLedger] = None,
        storage: Optional[KeyValueStore] = None,
        fetch_limit: int = DEFAULT_FETCH_LIMIT,
        default_category: str = DEFAULT_LOCAL_CATEGORY,
    ):
        self.store = store
        self.remote = remote
        self.ledger = ledger if ledger is not None else BackupLedger()
        self.fetch_limit = fetch_limit
        self.default_category = default_category
        self._storage = storage

        self.state = SyncState.IDLE
        self.last_status: Optional[SyncState] = None
        self.last_result: Optional[SyncResult] = None
        self.last_error: Optional[str] = None
        self.pass_count = 0

        self._listeners: list[Any] = []
        self._conflicts: dict[str, Conflict] = self._load_conflicts()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Any) -> None:
        """Register an object with on_sync_result / on_sync_failed hooks."""
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: Any) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, hook: str, payload: Any) -> None:
        for listener in list(self._listeners):
            callback = getattr(listener, hook, None)
            if callback is None:
                continue
            try:
                callback(payload)
            except Exception:
                logger.exception("Sync listener %r failed in %s", listener, hook)

    # ------------------------------------------------------------------
    # Sync pass
    # ------------------------------------------------------------------

    @property
    def is_syncing(self) -> bool:
        return self.state == SyncState.SYNCING

    async def run_pass(self) -> PassOutcome:
        """Run one reconciliation pass.

        Returns:
            PassOutcome. ``rejected`` if a pass is already in flight,
            ``failed`` if the remote was unavailable (local state is
            untouched), ``completed`` otherwise.
        """
        if self.is_syncing:
            logger.info("Sync already in progress, pass rejected")
            return PassOutcome(
                status=PassStatus.REJECTED,
                error=ReentrantSyncRejected("A sync pass is already in progress"),
            )

        self.state = SyncState.SYNCING
        try:
            return await self._run_pass()
        finally:
            self.state = SyncState.IDLE

    async def _run_pass(self) -> PassOutcome:
        snapshot = self.ledger.retain(self.store.get_all())
        logger.info(
            "Sync pass started — %d local quote(s), fetching up to %d from %s",
            len(snapshot.quotes), self.fetch_limit, self.remote.name,
        )

        try:
            remote_quotes = await self.remote.list_remote(self.fetch_limit)
        except RemoteUnavailable as exc:
            message = str(exc)
            logger.warning("Sync pass failed: %s", message)
            self.last_status = SyncState.FAILED
            self.last_error = message
            self._notify("on_sync_failed", message)
            return PassOutcome(status=PassStatus.FAILED, error=exc)

        classification = classify(snapshot.quotes, remote_quotes)

        first_seen: dict[str, Quote] = {}
        for quote in remote_quotes:
            first_seen.setdefault(quote.key, quote)
        incoming = list(classification.added) + [
            first_seen[c.key] for c in classification.conflicts
        ]

        persisted = True
        try:
            self.store.bulk_upsert(incoming)
        except PersistenceError as exc:
            persisted = False
            logger.error("Sync applied in memory but not saved: %s", exc)

        for conflict in classification.conflicts:
            self._conflicts[conflict.key] = conflict
        self._save_conflicts()

        result = SyncResult(
            added=classification.added, conflicts=classification.conflicts
        )
        self.pass_count += 1
        self.last_status = SyncState.COMPLETED
        self.last_result = result
        self.last_error = None
        logger.info(
            "Sync pass completed — %s, %d unchanged",
            result.summary(), classification.unchanged,
        )
        self._notify("on_sync_result", result)
        return PassOutcome(
            status=PassStatus.COMPLETED, result=result, persisted=persisted
        )

    # ------------------------------------------------------------------
    # Manual override and undo
    # ------------------------------------------------------------------

    @property
    def conflicts(self) -> list[Conflict]:
        """Outstanding conflicts, oldest first."""
        return list(self._conflicts.values())

    def resolve(self, key: str, choice: Union[Resolution, str]) -> Conflict:
        """Settle one outstanding conflict.

        ``keep-local`` puts back the category the local side held when
        the conflict was detected. ``use-remote`` confirms the value the
        pass already applied. Either way the conflict is cleared.

        Raises:
            KeyError: If no conflict is outstanding for key.
            ValueError: If choice is not a known resolution.
            ReentrantSyncRejected: While a pass is in flight.
        """
        self._refuse_while_syncing("resolve a conflict")
        choice = Resolution(choice)
        norm = quote_key(key)
        conflict = self._conflicts.get(norm)
        if conflict is None:
            raise KeyError(key)

        try:
            if choice == Resolution.KEEP_LOCAL:
                self.store.upsert(
                    Quote(
                        text=self._text_for(norm),
                        category=conflict.local_category,
                    )
                )
        finally:
            del self._conflicts[norm]
            self._save_conflicts()

        logger.info("Conflict on %r resolved: %s", norm, choice.value)
        return conflict

    def undo_last_sync(self) -> Snapshot:
        """Restore the collection to the snapshot taken by the last pass.

        Raises:
            NoBackupAvailable: If no pass has run yet.
            ReentrantSyncRejected: While a pass is in flight.
        """
        self._refuse_while_syncing("undo")
        snapshot = self.ledger.latest()
        if snapshot is None:
            raise NoBackupAvailable("No sync has run yet, nothing to undo")

        self._conflicts.clear()
        self._save_conflicts()
        self.store.replace_all(snapshot.quotes)
        logger.info(
            "Undid last sync — restored %d quote(s) from %s",
            len(snapshot.quotes), snapshot.taken_at.isoformat(),
        )
        return snapshot

    def _text_for(self, key: str) -> str:
        current = self.store.get(key)
        if current is not None:
            return current.text
        snapshot = self.ledger.latest()
        original = snapshot.find(key) if snapshot else None
        return original.text if original is not None else key

    def _refuse_while_syncing(self, action: str) -> None:
        if self.is_syncing:
            raise ReentrantSyncRejected(
                f"Cannot {action} while a sync pass is in progress"
            )

    # ------------------------------------------------------------------
    # Local additions
    # ------------------------------------------------------------------

    async def add_quote(
        self,
        text: str,
        category: Optional[str] = None,
        push: bool = True,
    ) -> SubmitOutcome:
        """Add a quote locally, then push it to the remote best-effort.

        The local upsert is the commit point. A failed push is reported
        in the outcome and never undoes the local change.

        Raises:
            ValueError: If text or category is empty.
            PersistenceError: If the local change could not be saved.
        """
        quote = Quote(text=text, category=category or self.default_category)
        self.store.upsert(quote)
        stored = self.store.get(quote.key) or quote
        logger.info("Quote added locally: %s [%s]", stored.text, stored.category)

        if not push:
            return SubmitOutcome(quote=stored, submitted=False)

        try:
            await self.remote.submit_record(stored)
        except RemoteUnavailable as exc:
            logger.warning("Could not post quote to remote: %s", exc)
            return SubmitOutcome(quote=stored, submitted=False, error=str(exc))
        return SubmitOutcome(quote=stored, submitted=True)

    # ------------------------------------------------------------------
    # Status and persistence of outstanding conflicts
    # ------------------------------------------------------------------

    def status(self) -> dict:
        """Get current sync status.

        Returns:
            Dict with engine state, counts and backup info.
        """
        snapshot = self.ledger.latest()
        return {
            "state": self.state.value,
            "last_status": self.last_status.value if self.last_status else None,
            "last_error": self.last_error,
            "passes": self.pass_count,
            "quotes": len(self.store),
            "pending_conflicts": len(self._conflicts),
            "backup_taken_at": snapshot.taken_at.isoformat() if snapshot else None,
            "remote": self.remote.name,
        }

    def _load_conflicts(self) -> dict[str, Conflict]:
        if self._storage is None:
            return {}
        raw = self._storage.get(PENDING_CONFLICTS_KEY) or []
        conflicts: dict[str, Conflict] = {}
        if not isinstance(raw, list):
            logger.warning("Stored conflicts are not a list, ignoring them")
            return conflicts
        for item in raw:
            try:
                conflict = Conflict.model_validate(item)
            except ValidationError as exc:
                logger.warning("Skipping stored conflict %r: %s", item, exc)
                continue
            conflicts[conflict.key] = conflict
        return conflicts

    def _save_conflicts(self) -> None:
        if self._storage is None:
            return
        try:
            self._storage.set(
                PENDING_CONFLICTS_KEY,
                [c.model_dump() for c in self._conflicts.values()],
            )
        except PersistenceError as exc:
            logger.warning("Could not persist outstanding conflicts: %s", exc)
