"""Filtered, searched and sorted views over effective rows."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from resonance.hub.constants import ROLE_FILTERS, SORT_MODES, STATUS_FILTERS
from resonance.models import ResonanceRow, SemanticsRow

_OLDEST = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True)
class ViewQuery:
    """Filter and sort settings for one group view.

    Validation runs in __post_init__ to reject unknown vocabulary values.
    """

    role: str = "all"
    status: str = "all"
    search: str = ""
    sort: str = "intensity"

    def __post_init__(self) -> None:
        if self.role not in ROLE_FILTERS:
            raise ValueError(f"role must be one of {sorted(ROLE_FILTERS)}, got {self.role!r}")
        if self.status not in STATUS_FILTERS:
            raise ValueError(f"status must be one of {sorted(STATUS_FILTERS)}, got {self.status!r}")
        if self.sort not in SORT_MODES:
            raise ValueError(f"sort must be one of {sorted(SORT_MODES)}, got {self.sort!r}")


def _matches_status(row: ResonanceRow, status: str, cutoff: datetime) -> bool:
    if status == "enabled":
        return row.enabled
    if status == "disabled":
        return not row.enabled
    if status == "recent":
        return row.created_at is not None and row.created_at >= cutoff
    return True


def _matches_search(row: ResonanceRow, needle: str, semantics: SemanticsRow | None) -> bool:
    if not needle:
        return True
    haystacks = [row.basename, row.media_path]
    if semantics is not None:
        haystacks.append(" ".join(semantics.tags))
        haystacks.append(semantics.climate or "")
    return any(needle in text.lower() for text in haystacks)


def sort_rows(rows: Iterable[ResonanceRow], mode: str) -> list[ResonanceRow]:
    """Sort by ``mode``; equal rows fall back to ascending composite key."""
    ordered = sorted(rows, key=lambda r: r.key)
    if mode == "intensity":
        return sorted(ordered, key=lambda r: r.intensity, reverse=True)
    if mode == "created":
        # Undated rows go last; the stable sort keeps key order among equals
        return sorted(
            ordered,
            key=lambda r: (r.created_at is not None, r.created_at or _OLDEST),
            reverse=True,
        )
    if mode == "name":
        return sorted(ordered, key=lambda r: r.basename.lower())
    raise ValueError(f"Unknown sort mode: {mode!r}")


def build_view(
    rows: Iterable[ResonanceRow],
    query: ViewQuery,
    semantics: Mapping[str, SemanticsRow] | None = None,
    *,
    now: datetime | None = None,
    recency_window: timedelta = timedelta(days=2),
) -> list[ResonanceRow]:
    """Filter and sort effective rows of one group.

    Args:
        rows: Effective rows (base merged with pending patches).
        query: Role, status, search and sort settings.
        semantics: Lookup by media path used for tag and climate search.
        now: Reference time for the ``recent`` status filter.
        recency_window: How far back ``recent`` reaches.
    """
    semantics = semantics or {}
    now = now or datetime.now(tz=UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    cutoff = now - recency_window
    needle = query.search.strip().lower()

    selected = [
        row
        for row in rows
        if (query.role == "all" or row.role == query.role)
        and _matches_status(row, query.status, cutoff)
        and _matches_search(row, needle, semantics.get(row.media_path))
    ]
    return sort_rows(selected, query.sort)
