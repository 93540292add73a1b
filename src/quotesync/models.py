"""
Data models for quotesync -- quotes, conflicts, and sync outcomes.

A quote's identity is its key: the trimmed, lowercased text. The key is
never stored; it is always derived through quote_key() so the store,
the resolver and undo all agree on what "the same quote" means.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def quote_key(text: str) -> str:
    """Derive the identity key for a quote text.

    Args:
        text: Raw or normalized quote text.

    Returns:
        str: The text trimmed and lowercased.
    """
    return text.strip().lower()


class SyncState(str, Enum):
    """Lifecycle state of the sync engine."""

    IDLE = "idle"
    SYNCING = "syncing"
    COMPLETED = "completed"
    FAILED = "failed"


class PassStatus(str, Enum):
    """How a requested sync pass ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"


class Resolution(str, Enum):
    """Operator choice for an outstanding conflict."""

    KEEP_LOCAL = "keep-local"
    USE_REMOTE = "use-remote"


class Quote(BaseModel):
    """A single quote. Text and category are trimmed on construction."""

    model_config = ConfigDict(frozen=True)

    text: str
    category: str

    @field_validator("text", "category", mode="before")
    @classmethod
    def normalize_field(cls, value: object) -> str:
        if not isinstance(value, str):
            raise ValueError("must be a string")
        value = value.strip()
        if not value:
            raise ValueError("must not be empty")
        return value

    @property
    def key(self) -> str:
        """Identity key derived from the text."""
        return quote_key(self.text)

    def to_dict(self) -> dict[str, str]:
        """Return the persisted ``{text, category}`` shape."""
        return {"text": self.text, "category": self.category}


class Conflict(BaseModel):
    """A quote present on both sides with differing categories."""

    model_config = ConfigDict(frozen=True)

    key: str
    local_category: str
    remote_category: str


class Snapshot(BaseModel):
    """Immutable copy of the collection taken before a sync pass."""

    model_config = ConfigDict(frozen=True)

    quotes: tuple[Quote, ...] = ()
    taken_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def find(self, key: str) -> Optional[Quote]:
        """Return the quote with the given key, if the snapshot holds one."""
        for quote in self.quotes:
            if quote.key == key:
                return quote
        return None


class SyncResult(BaseModel):
    """What one completed sync pass changed.

    Attributes:
        added: Remote quotes that were new locally, in remote order.
        conflicts: Same-keyed quotes whose categories differed.
        timestamp: When the pass completed.
    """

    model_config = ConfigDict(frozen=True)

    added: tuple[Quote, ...] = ()
    conflicts: tuple[Conflict, ...] = ()
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.conflicts)

    def summary(self) -> str:
        """One-line human summary, e.g. '2 added, 1 conflict(s)'."""
        return f"{len(self.added)} added, {len(self.conflicts)} conflict(s)"


class BulkUpsertReport(BaseModel):
    """Counts from a bulk upsert.

    Attributes:
        added: Quotes appended as new keys.
        updated: Existing keys whose category changed.
        unchanged: Existing keys already holding the same category.
        rejected: Malformed entries that were skipped.
    """

    added: int = 0
    updated: int = 0
    unchanged: int = 0
    rejected: int = 0


@dataclass(frozen=True)
class PassOutcome:
    """Explicit result of SyncEngine.run_pass().

    ``result`` is set when the pass completed, ``error`` when it failed
    or was rejected because another pass was in flight.
    """

    status: PassStatus
    result: Optional[SyncResult] = None
    error: Optional[Exception] = None
    persisted: bool = True

    @property
    def ok(self) -> bool:
        return self.status == PassStatus.COMPLETED


@dataclass(frozen=True)
class SubmitOutcome:
    """Result of adding a quote locally and pushing it to the remote."""

    quote: Quote
    submitted: bool
    error: Optional[str] = None
