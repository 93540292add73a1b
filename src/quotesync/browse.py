"""
Quote browser -- pick a quote to show, honouring the category filter.

The last shown quote is kept in session storage so a restarted view
shows it again; the chosen filter is kept in durable storage.
"""

from __future__ import annotations

import logging
import random
from typing import Optional

from pydantic import ValidationError

from .models import Quote
from .storage import KeyValueStore
from .store import ALL_CATEGORIES, RecordStore

logger = logging.getLogger("quotesync.browse")

FILTER_KEY = "categoryFilter"
LAST_VIEWED_KEY = "lastViewedQuote"
EMPTY_MESSAGE = "No quotes available. Please add one!"


def format_quote(quote: Quote) -> str:
    """Render a quote as ``"text" — [category]``."""
    return f"\"{quote.text}\" — [{quote.category}]"


class QuoteBrowser:
    """Chooses which quote to display.

    Args:
        store: The record store to pick from.
        preferences: Durable storage for the category filter.
        session: Session storage for the last displayed quote.
        rng: Random source, injectable for tests.
    """

    def __init__(
        self,
        store: RecordStore,
        preferences: KeyValueStore,
        session: KeyValueStore,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.preferences = preferences
        self.session = session
        self.rng = rng or random.Random()

    @property
    def category_filter(self) -> str:
        return self.preferences.get(FILTER_KEY, ALL_CATEGORIES)

    def set_filter(self, category: Optional[str]) -> str:
        """Select a category ('all' or None clears the filter).

        Raises:
            PersistenceError: If the filter could not be saved.
        """
        value = (category or ALL_CATEGORIES).strip() or ALL_CATEGORIES
        self.preferences.set(FILTER_KEY, value)
        return value

    def candidates(self) -> list[Quote]:
        """Quotes matching the current filter."""
        return self.store.filter(self.category_filter)

    def current(self) -> Optional[Quote]:
        """The last displayed quote if still present, else a fresh pick."""
        raw = self.session.get(LAST_VIEWED_KEY)
        if raw is not None:
            try:
                remembered = Quote.model_validate(raw)
            except ValidationError:
                logger.debug("Ignoring unreadable last viewed quote %r", raw)
            else:
                stored = self.store.get(remembered.key)
                if stored is not None and stored in self.candidates():
                    return stored
        return self.next()

    def next(self) -> Optional[Quote]:
        """Pick a random quote from the filtered collection."""
        pool = self.candidates()
        if not pool:
            self.session.delete(LAST_VIEWED_KEY)
            return None
        quote = self.rng.choice(pool)
        self.session.set(LAST_VIEWED_KEY, quote.to_dict())
        return quote
