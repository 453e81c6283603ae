"""Bulk operations over the current view, written through the edit session.

Every function receives the effective rows of the view and touches no
other row.
"""

import logging
import random
from collections import defaultdict
from collections.abc import Mapping, Sequence
from typing import Protocol

from resonance.hub.constants import (
    DEFAULT_AUTOFILL_INTENSITY,
    INTENSITY_MAX,
    NORMALIZE_CAP,
    ROLE_DEFAULT_INTENSITY,
)
from resonance.models import ResonanceRow, clamp_intensity, round_half_away
from resonance.store.session import EditSession

logger = logging.getLogger(__name__)


class SignSource(Protocol):
    def choice(self, seq: Sequence[int]) -> int: ...


def autofill(
    view: Sequence[ResonanceRow],
    session: EditSession,
    defaults: Mapping[str, int] = ROLE_DEFAULT_INTENSITY,
    fallback: int = DEFAULT_AUTOFILL_INTENSITY,
) -> int:
    """Enable every row in view at its role's default intensity."""
    for row in view:
        session.set_edit(row.key, intensity=defaults.get(row.role, fallback), enabled=True)
    logger.debug("Autofilled %d row(s)", len(view))
    return len(view)


def normalized_intensities(intensities: Sequence[int], cap: int = NORMALIZE_CAP) -> list[int]:
    """Redistribute intensities proportionally toward min(cap, n * 10).

    Each value becomes round(value / total * target), clamped to [0, 10];
    a zero total counts as 1. Rounding and clamping mean the result is not
    an exact fixed point, but repeated passes settle after a few steps.
    """
    if not intensities:
        return []
    total = sum(intensities) or 1
    target = min(cap, len(intensities) * INTENSITY_MAX)
    return [clamp_intensity(round_half_away(value / total * target)) for value in intensities]


def normalize(view: Sequence[ResonanceRow], session: EditSession, cap: int = NORMALIZE_CAP) -> int:
    """Normalize enabled rows per role group. Disabled rows are left untouched.

    Returns:
        Number of rows written.
    """
    by_role: dict[str, list[ResonanceRow]] = defaultdict(list)
    for row in view:
        if row.enabled:
            by_role[row.role].append(row)

    written = 0
    for role, rows in by_role.items():
        values = normalized_intensities([row.intensity for row in rows], cap)
        for row, value in zip(rows, values, strict=True):
            session.set_edit(row.key, intensity=value)
        written += len(rows)
        logger.debug("Normalized %d %s row(s) -> %s", len(rows), role, values)
    return written


def random_soft(view: Sequence[ResonanceRow], session: EditSession, rng: SignSource | None = None) -> int:
    """Nudge every row in view by +1 or -1, clamped to [0, 10].

    Args:
        rng: Anything with ``choice``; pass a seeded ``random.Random`` for
            reproducible runs.
    """
    rng = rng or random.Random()
    for row in view:
        step = rng.choice((1, -1))
        session.set_edit(row.key, intensity=row.intensity + step)
    return len(view)
