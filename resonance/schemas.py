"""Shared TypedDict schema definitions for the remote JSON contract.

Defines the row shapes the PostgREST tables return and accept. Used for
column selection, payload validation (warn on missing keys) and for
building write bodies.
"""

from typing import Any, TypedDict


class ResonancePayload(TypedDict, total=False):
    """One row of the resonance table as it travels over the wire.

    ``emoji`` is the wire name of the group tag.
    """

    emoji: str
    media_path: str
    role: str
    intensity: int
    enabled: bool
    created_at: str | None


class SemanticsPayload(TypedDict, total=False):
    """One row of the media semantics table."""

    path: str
    category: str
    climate: str | None
    energy: float | None
    role: str | None
    tags: list[str] | None
    enabled: bool
    created_at: str | None


class ResonanceWrite(TypedDict):
    """One entry of a bulk save body."""

    emoji: str
    media_path: str
    role: str
    intensity: int
    enabled: bool


RESONANCE_COLUMNS: tuple[str, ...] = ("emoji", "media_path", "role", "intensity", "enabled", "created_at")
SEMANTICS_COLUMNS: tuple[str, ...] = (
    "path",
    "category",
    "climate",
    "energy",
    "role",
    "tags",
    "enabled",
    "created_at",
)

# Keys a resonance row must carry to be usable at all.
REQUIRED_RESONANCE_KEYS: set[str] = {"emoji", "media_path", "role"}
REQUIRED_SEMANTICS_KEYS: set[str] = {"path"}


def missing_keys(row: dict[str, Any], required: set[str]) -> list[str]:
    """Return the sorted required keys absent from ``row``.

    Does NOT raise — callers decide whether to warn or discard.
    """
    return sorted(required - set(row.keys()))
