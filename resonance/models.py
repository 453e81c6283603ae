"""Row, key and patch models shared by the loader, session, view and save pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import NamedTuple

from resonance.hub.constants import INTENSITY_MAX, INTENSITY_MIN


class ResonanceKey(NamedTuple):
    """Composite identity of one resonance row.

    Tuple ordering doubles as the deterministic tie-break for every sort.
    """

    tag: str
    media_path: str
    role: str


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves away from zero (2.5 -> 3, -2.5 -> -3)."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def clamp_intensity(value: float | int) -> int:
    """Clamp any number into the closed integer range [0, 10].

    NaN maps to the lower bound; infinities clamp to the matching bound.
    """
    if isinstance(value, bool):
        value = int(value)
    if math.isnan(value):
        return INTENSITY_MIN
    if math.isinf(value):
        return INTENSITY_MAX if value > 0 else INTENSITY_MIN
    return max(INTENSITY_MIN, min(INTENSITY_MAX, round_half_away(value)))


@dataclass(frozen=True)
class Patch:
    """Complete override of the mutable fields of one row."""

    intensity: int
    enabled: bool

    def to_dict(self) -> dict:
        return {"intensity": self.intensity, "enabled": self.enabled}


@dataclass(frozen=True)
class ResonanceRow:
    """One tag <-> media link as loaded from the remote store."""

    tag: str
    media_path: str
    role: str
    intensity: int
    enabled: bool
    created_at: datetime | None = None

    @property
    def key(self) -> ResonanceKey:
        return ResonanceKey(self.tag, self.media_path, self.role)

    @property
    def basename(self) -> str:
        return self.media_path.rstrip("/").rsplit("/", 1)[-1]

    def with_patch(self, patch: Patch | None) -> ResonanceRow:
        """Return this row with ``patch`` applied field by field."""
        if patch is None:
            return self
        return replace(self, intensity=patch.intensity, enabled=patch.enabled)

    def to_dict(self) -> dict:
        return {
            "tag": self.tag,
            "media_path": self.media_path,
            "role": self.role,
            "intensity": self.intensity,
            "enabled": self.enabled,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class SemanticsRow:
    """Read-only media metadata joined on ``path``."""

    path: str
    category: str
    climate: str | None = None
    energy: float | None = None
    role: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    enabled: bool = False
    created_at: datetime | None = None
