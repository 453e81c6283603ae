"""Edit session — diff-only store of pending patches keyed by composite key.

Pure in-memory bookkeeping: nothing here reads or writes the remote layer.
Base rows are consulted only to merge a new edit with the current
effective value.
"""

import logging
from collections.abc import Callable, Iterable, Mapping

from resonance.models import Patch, ResonanceKey, ResonanceRow, clamp_intensity

logger = logging.getLogger(__name__)


class UnknownRowError(KeyError):
    """An edit addressed a key with neither a base row nor a pending patch."""


class EditSession:
    """Holds at most one complete Patch per composite key."""

    def __init__(self, lookup: Callable[[ResonanceKey], ResonanceRow | None]):
        """Initialize edit session.

        Args:
            lookup: Returns the base row for a key, or None if unknown.
        """
        self._lookup = lookup
        self._patches: dict[ResonanceKey, Patch] = {}
        self._unconfirmed: set[ResonanceKey] = set()

    def effective(self, row: ResonanceRow) -> ResonanceRow:
        """Base row merged with its pending patch, or the row unchanged."""
        return row.with_patch(self._patches.get(row.key))

    def set_edit(self, key: ResonanceKey, intensity: float | None = None, enabled: bool | None = None) -> Patch:
        """Record an edit for ``key`` and return the stored patch.

        The new patch starts from the current effective value (base merged
        with any prior patch), applies the given fields, and clamps
        intensity into [0, 10]. The full pair is stored, replacing any
        previous patch for the key.
        """
        current = self._patches.get(key)
        if current is None:
            base = self._lookup(key)
            if base is None:
                raise UnknownRowError(key)
            current = Patch(intensity=base.intensity, enabled=base.enabled)

        patch = Patch(
            intensity=clamp_intensity(current.intensity if intensity is None else intensity),
            enabled=current.enabled if enabled is None else bool(enabled),
        )
        self._patches[key] = patch
        logger.debug("Edit %s -> %s", key, patch)
        return patch

    def clear_group(self, tag: str) -> int:
        """Drop every patch in group ``tag``. Returns how many were removed."""
        keys = [key for key in self._patches if key.tag == tag]
        for key in keys:
            del self._patches[key]
        self._unconfirmed = {key for key in self._unconfirmed if key.tag != tag}
        if keys:
            logger.info("Cleared %d pending edit(s) for group %s", len(keys), tag)
        return len(keys)

    def discard(self, written: Mapping[ResonanceKey, Patch]) -> int:
        """Drop patches that still equal the values in ``written``.

        A key edited again after ``written`` was captured keeps its newer
        patch. Unconfirmed flags of every written key are cleared. Returns
        how many patches were removed.
        """
        removed = [key for key, patch in written.items() if self._patches.get(key) == patch]
        for key in removed:
            del self._patches[key]
        self._unconfirmed.difference_update(written)
        return len(removed)

    def pending_count(self, tag: str) -> int:
        return sum(1 for key in self._patches if key.tag == tag)

    def total_pending(self) -> int:
        return len(self._patches)

    def is_pending(self, key: ResonanceKey) -> bool:
        return key in self._patches

    def patches(self, tag: str | None = None) -> dict[ResonanceKey, Patch]:
        """Copy of the pending patches, optionally for one group, ordered by key."""
        return {key: self._patches[key] for key in sorted(self._patches) if tag is None or key.tag == tag}

    def mark_unconfirmed(self, keys: Iterable[ResonanceKey]) -> None:
        """Flag keys whose patch reached the remote store during a save that later failed."""
        self._unconfirmed.update(key for key in keys if key in self._patches)

    def unconfirmed(self, tag: str | None = None) -> set[ResonanceKey]:
        return {key for key in self._unconfirmed if tag is None or key.tag == tag}
