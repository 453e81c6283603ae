"""Remote dataset loader — fetches, coerces and holds the base collections.

A load either replaces both collections wholesale or changes nothing
except the surfaced error: there is no partial merge of a failed load.
"""

import logging
import math
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from resonance.models import ResonanceKey, ResonanceRow, SemanticsRow, clamp_intensity
from resonance.remote.client import RemoteError, SupabaseClient
from resonance.schemas import REQUIRED_RESONANCE_KEYS, REQUIRED_SEMANTICS_KEYS, missing_keys

logger = logging.getLogger(__name__)


class LoadError(Exception):
    """The remote payload could not be turned into base rows."""


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _as_optional_text(value: Any) -> str | None:
    text = _as_text(value)
    return text or None


def _as_number(value: Any) -> float:
    """Coerce to a finite float; anything else becomes 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _as_bool(value: Any) -> bool:
    return value if isinstance(value, bool) else False


def _as_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    text = _as_text(value)
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _as_tags(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list | tuple):
        return ()
    return tuple(tag for tag in (_as_text(v) for v in value if isinstance(v, str)) if tag)


def coerce_resonance_row(raw: Any) -> ResonanceRow | None:
    """Turn one wire row into a ResonanceRow, or None when it has no usable identity."""
    if not isinstance(raw, dict):
        return None
    tag = _as_text(raw.get("emoji"))
    media_path = _as_text(raw.get("media_path"))
    role = _as_text(raw.get("role"))
    if not (tag and media_path and role):
        return None
    return ResonanceRow(
        tag=tag,
        media_path=media_path,
        role=role,
        intensity=clamp_intensity(_as_number(raw.get("intensity"))),
        enabled=_as_bool(raw.get("enabled")),
        created_at=_as_timestamp(raw.get("created_at")),
    )


def coerce_semantics_row(raw: Any) -> SemanticsRow | None:
    """Turn one wire row into a SemanticsRow, or None when it has no path."""
    if not isinstance(raw, dict):
        return None
    path = _as_text(raw.get("path"))
    if not path:
        return None
    energy = raw.get("energy")
    if energy is not None:
        energy = min(1.0, max(0.0, _as_number(energy)))
    return SemanticsRow(
        path=path,
        category=_as_text(raw.get("category")),
        climate=_as_optional_text(raw.get("climate")),
        energy=energy,
        role=_as_optional_text(raw.get("role")),
        tags=_as_tags(raw.get("tags")),
        enabled=_as_bool(raw.get("enabled")),
        created_at=_as_timestamp(raw.get("created_at")),
    )


def coerce_resonance_rows(payload: Any) -> tuple[list[ResonanceRow], int]:
    """Coerce a resonance payload. Returns (rows, discarded_count).

    Later duplicates of a composite key are discarded so the key stays unique.
    """
    if not isinstance(payload, list):
        raise LoadError(f"resonance payload must be a list, got {type(payload).__name__}")
    rows: list[ResonanceRow] = []
    seen: set[ResonanceKey] = set()
    discarded = 0
    for raw in payload:
        row = coerce_resonance_row(raw)
        if row is None:
            if isinstance(raw, dict):
                missing = missing_keys(raw, REQUIRED_RESONANCE_KEYS) or "non-empty identity"
                logger.debug("Discarding row (missing %s): %s", missing, raw)
            discarded += 1
            continue
        if row.key in seen:
            logger.debug("Discarding duplicate row %s", row.key)
            discarded += 1
            continue
        seen.add(row.key)
        rows.append(row)
    return rows, discarded


def coerce_semantics_rows(payload: Any) -> dict[str, SemanticsRow]:
    if not isinstance(payload, list):
        raise LoadError(f"semantics payload must be a list, got {type(payload).__name__}")
    by_path: dict[str, SemanticsRow] = {}
    for raw in payload:
        row = coerce_semantics_row(raw)
        if row is None:
            if isinstance(raw, dict):
                missing = missing_keys(raw, REQUIRED_SEMANTICS_KEYS) or "non-empty path"
                logger.debug("Discarding semantics row (missing %s): %s", missing, raw)
            continue
        if row.path not in by_path:
            by_path[row.path] = row
    return by_path


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class DatasetLoader:
    """Owns the base resonance rows and the semantics lookup."""

    def __init__(self, client: SupabaseClient):
        self.client = client
        self._rows: dict[ResonanceKey, ResonanceRow] = {}
        self.semantics: dict[str, SemanticsRow] = {}
        self.loading = False
        self.error: str | None = None
        self.loaded_at: datetime | None = None
        self.discarded = 0

    @property
    def rows(self) -> list[ResonanceRow]:
        """Base rows in load order."""
        return list(self._rows.values())

    def get(self, key: ResonanceKey) -> ResonanceRow | None:
        return self._rows.get(key)

    def replace(self, rows: Iterable[ResonanceRow], semantics: dict[str, SemanticsRow] | None = None):
        """Swap in a new base collection wholesale."""
        self._rows = {row.key: row for row in rows}
        if semantics is not None:
            self.semantics = dict(semantics)

    async def load(self) -> bool:
        """Fetch both collections and replace the base rows.

        Returns:
            True on success. On failure the previous rows are kept, ``error``
            holds the reason and False is returned; call again to retry.
        """
        self.loading = True
        self.error = None
        try:
            if not self.client.config.configured:
                raise LoadError("Supabase URL and anon key are not configured")
            resonance_payload = await self.client.fetch_resonance()
            semantics_payload = await self.client.fetch_semantics()
            rows, discarded = coerce_resonance_rows(resonance_payload)
            semantics = coerce_semantics_rows(semantics_payload)
        except (RemoteError, LoadError) as e:
            self.error = str(e)
            logger.warning("Dataset load failed (keeping %d previous rows): %s", len(self._rows), e)
            return False
        finally:
            self.loading = False

        self.replace(rows, semantics)
        self.discarded = discarded
        self.loaded_at = datetime.now(tz=UTC)
        if discarded:
            logger.warning("Discarded %d resonance row(s) without tag, path or role", discarded)
        logger.info("Loaded %d resonance row(s), %d semantics row(s)", len(rows), len(semantics))
        return True
