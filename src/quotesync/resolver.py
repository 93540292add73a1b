"""
Conflict resolver -- classify remote quotes against a local snapshot.

Pure functions only. The result depends on the two inputs and nothing
else, so classifying the same pair twice yields identical output.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .models import Conflict, Quote


@dataclass(frozen=True)
class Classification:
    """Outcome of comparing a remote list to a local snapshot.

    Attributes:
        added: Remote quotes whose key is absent locally.
        conflicts: Same key, different category.
        unchanged: How many remote quotes matched exactly.
    """

    added: tuple[Quote, ...] = ()
    conflicts: tuple[Conflict, ...] = ()
    unchanged: int = 0


def classify(
    local_snapshot: Iterable[Quote],
    remote_records: Iterable[Quote],
) -> Classification:
    """Sort remote quotes into new, conflicting and unchanged.

    Categories are compared exactly (case-sensitive) after trimming,
    which Quote construction already did. Only the first remote quote
    for a key is considered. Quotes that exist only locally are not
    reported.

    Args:
        local_snapshot: The local collection before the pass.
        remote_records: Quotes fetched from the remote, in remote order.

    Returns:
        Classification with ``added`` and ``conflicts`` in remote order.
    """
    local = {quote.key: quote for quote in local_snapshot}
    added: list[Quote] = []
    conflicts: list[Conflict] = []
    unchanged = 0
    seen: set[str] = set()

    for remote in remote_records:
        key = remote.key
        if key in seen:
            continue
        seen.add(key)

        existing = local.get(key)
        if existing is None:
            added.append(remote)
        elif existing.category != remote.category:
            conflicts.append(
                Conflict(
                    key=key,
                    local_category=existing.category,
                    remote_category=remote.category,
                )
            )
        else:
            unchanged += 1

    return Classification(
        added=tuple(added), conflicts=tuple(conflicts), unchanged=unchanged
    )
