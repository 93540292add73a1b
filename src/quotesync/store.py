"""
Record store -- the one owner of the quote collection.

Nothing else touches the underlying list. Every mutation goes through
upsert / bulk_upsert / remove / replace_all, which normalize, dedupe by
key, and persist the post-mutation collection before returning.

In-memory state is the source of truth: when persistence fails the
mutation stays applied and PersistenceError tells the caller so.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any, Optional, Union

from .errors import MalformedImport, PersistenceError
from .models import BulkUpsertReport, Quote, quote_key
from .storage import KeyValueStore

logger = logging.getLogger("quotesync.store")

QUOTES_KEY = "quotes"
ALL_CATEGORIES = "all"

DEFAULT_QUOTES = [
    {
        "text": "The best way to get started is to quit talking and begin doing.",
        "category": "Motivation",
    },
    {
        "text": "Don’t let yesterday take up too much of today.",
        "category": "Inspiration",
    },
    {
        "text": "It’s not whether you get knocked down, it’s whether you get up.",
        "category": "Resilience",
    },
]

RecordLike = Union[Quote, Mapping[str, Any]]

_ADDED = "added"
_UPDATED = "updated"
_UNCHANGED = "unchanged"


def coerce_quote(record: Any) -> Quote:
    """Turn a Quote or a ``{text, category}`` mapping into a Quote.

    Raises:
        ValueError: If the record is not a mapping, or text/category are
            missing, not strings, or empty after trimming.
    """
    if isinstance(record, Quote):
        return record
    if not isinstance(record, Mapping):
        raise ValueError(f"expected a mapping, got {type(record).__name__}")
    return Quote(text=record.get("text"), category=record.get("category"))


class RecordStore:
    """Owns the canonical quote collection and its persisted mirror.

    Args:
        storage: Durable key-value storage holding the ``quotes`` entry.
        defaults: Collection to start from when storage holds none.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        defaults: Optional[Iterable[RecordLike]] = None,
    ):
        self._storage = storage
        self._quotes: list[Quote] = []
        self._load(DEFAULT_QUOTES if defaults is None else defaults)

    def _load(self, defaults: Iterable[RecordLike]) -> None:
        """Populate the collection from storage, falling back to defaults."""
        raw = self._storage.get(QUOTES_KEY)
        if raw is None:
            source: Iterable[Any] = defaults
        elif not isinstance(raw, list):
            logger.warning("Stored quotes are not a list, using defaults")
            source = defaults
        else:
            source = raw

        for item in source:
            try:
                self._apply(coerce_quote(item))
            except ValueError as exc:
                logger.warning("Skipping stored quote %r: %s", item, exc)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all(self) -> list[Quote]:
        """Return a copy of the collection in insertion order."""
        return list(self._quotes)

    def get(self, key: str) -> Optional[Quote]:
        """Look up a quote by key (or by text, which is keyed first)."""
        index = self._index_of(quote_key(key))
        return None if index is None else self._quotes[index]

    def __len__(self) -> int:
        return len(self._quotes)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._index_of(quote_key(key)) is not None

    def categories(self) -> list[str]:
        """Distinct categories in first-seen order."""
        seen: dict[str, None] = {}
        for quote in self._quotes:
            seen.setdefault(quote.category, None)
        return list(seen)

    def filter(self, category: Optional[str] = None) -> list[Quote]:
        """Quotes in one category; None or 'all' returns everything."""
        if category is None or category == ALL_CATEGORIES:
            return self.get_all()
        return [q for q in self._quotes if q.category == category]

    def export_records(self) -> list[dict[str, str]]:
        """JSON-ready ``{text, category}`` list of the collection."""
        return [q.to_dict() for q in self._quotes]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def upsert(self, record: RecordLike) -> bool:
        """Insert a quote, or replace the category of the same-keyed one.

        Args:
            record: A Quote or a ``{text, category}`` mapping.

        Returns:
            True if the quote was appended as a new key.

        Raises:
            ValueError: If the record is malformed.
            PersistenceError: If the collection could not be saved.
        """
        outcome = self._apply(coerce_quote(record))
        if outcome != _UNCHANGED:
            self._persist()
        return outcome == _ADDED

    def bulk_upsert(self, records: Iterable[Any]) -> BulkUpsertReport:
        """Upsert many records in order, skipping malformed ones.

        The last record for a given key wins. The collection is saved
        once, after every record has been applied.

        Raises:
            PersistenceError: If saving failed. ``exc.report`` holds the
                counts of the (already applied) mutation.
        """
        report = BulkUpsertReport()
        for record in records:
            try:
                quote = coerce_quote(record)
            except ValueError as exc:
                logger.debug("Rejected record %r: %s", record, exc)
                report.rejected += 1
                continue

            outcome = self._apply(quote)
            if outcome == _ADDED:
                report.added += 1
            elif outcome == _UPDATED:
                report.updated += 1
            else:
                report.unchanged += 1

        if report.added or report.updated:
            self._persist(report)
        return report

    def remove(self, key: str) -> bool:
        """Delete the quote with the given key (or text).

        Returns:
            True if a quote was removed.
        """
        index = self._index_of(quote_key(key))
        if index is None:
            return False
        del self._quotes[index]
        self._persist()
        return True

    def replace_all(self, records: Iterable[RecordLike]) -> None:
        """Swap the whole collection for records, deduped by key.

        Raises:
            ValueError: If any record is malformed; nothing is replaced.
        """
        quotes = [coerce_quote(r) for r in records]
        self._quotes = []
        for quote in quotes:
            self._apply(quote)
        self._persist()

    def import_records(self, payload: Any) -> BulkUpsertReport:
        """Merge externally supplied quotes, all or nothing.

        Args:
            payload: Decoded JSON; must be a list of ``{text, category}``.

        Raises:
            MalformedImport: If payload is not a list or any item is
                malformed. The collection is left untouched.
        """
        if not isinstance(payload, list):
            raise MalformedImport("Import must be a JSON array of quotes")

        quotes = []
        for index, item in enumerate(payload):
            try:
                quotes.append(coerce_quote(item))
            except ValueError as exc:
                raise MalformedImport(
                    f"Item {index} is not a valid quote: {exc}", index=index
                ) from exc

        report = self.bulk_upsert(quotes)
        logger.info(
            "Imported %d quote(s): %d added, %d updated",
            len(quotes), report.added, report.updated,
        )
        return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _index_of(self, key: str) -> Optional[int]:
        for index, quote in enumerate(self._quotes):
            if quote.key == key:
                return index
        return None

    def _apply(self, quote: Quote) -> str:
        """Apply one normalized quote in memory; no persistence."""
        index = self._index_of(quote.key)
        if index is None:
            self._quotes.append(quote)
            return _ADDED

        existing = self._quotes[index]
        if existing.category == quote.category:
            return _UNCHANGED
        self._quotes[index] = Quote(text=existing.text, category=quote.category)
        return _UPDATED

    def _persist(self, report: Optional[BulkUpsertReport] = None) -> None:
        try:
            self._storage.set(QUOTES_KEY, self.export_records())
        except PersistenceError as exc:
            raise PersistenceError(str(exc), report=report) from exc
