"""Resonance hub — the explicitly constructed state owner.

One hub per hosting application. It composes the loader, the edit
session, the view, the bulk operations and the save pipeline, and is
passed by reference to whatever serves or scripts them.
"""

import logging
from collections import Counter
from datetime import UTC, datetime
from typing import Any

from resonance.config import AppConfig
from resonance.models import Patch, ResonanceKey, ResonanceRow
from resonance.remote.client import SupabaseClient
from resonance.store import bulk
from resonance.store.bulk import SignSource
from resonance.store.loader import DatasetLoader
from resonance.store.save import SavePipeline, SaveResult
from resonance.store.session import EditSession
from resonance.store.view import ViewQuery, build_view


class ResonanceHub:
    """Central owner of base rows, pending edits and save state."""

    def __init__(self, config: AppConfig | None = None, client: SupabaseClient | None = None):
        """Initialize resonance hub.

        Args:
            config: Application config; environment-free defaults if omitted.
            client: Remote client; built from ``config.supabase`` if omitted.
        """
        self.config = config or AppConfig()
        self.client = client or SupabaseClient(self.config.supabase)
        self.loader = DatasetLoader(self.client)
        self.session = EditSession(self.loader.get)
        self.pipeline = SavePipeline(self.client, self.session, self.loader, self.config.save)
        self.logger = logging.getLogger("hub")

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> bool:
        """Load base rows; see DatasetLoader.load for failure semantics."""
        return await self.loader.load()

    async def close(self):
        await self.client.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def groups(self) -> list[dict[str, Any]]:
        """Distinct tags, ascending, with row and pending counts."""
        counts = Counter(row.tag for row in self.loader.rows)
        return [
            {"tag": tag, "rows": counts[tag], "pending": self.session.pending_count(tag)}
            for tag in sorted(counts)
        ]

    def effective_rows(self, tag: str | None = None) -> list[ResonanceRow]:
        return [self.session.effective(row) for row in self.loader.rows if tag is None or row.tag == tag]

    def view(self, tag: str, query: ViewQuery | None = None, now: datetime | None = None) -> list[ResonanceRow]:
        """Filtered, sorted effective rows of group ``tag``."""
        return build_view(
            self.effective_rows(tag),
            query or ViewQuery(),
            self.loader.semantics,
            now=now,
            recency_window=self.config.session.recency_window,
        )

    def pending_count(self, tag: str) -> int:
        return self.session.pending_count(tag)

    def status(self) -> dict[str, Any]:
        return {
            "loading": self.loader.loading,
            "error": self.loader.error,
            "loaded_at": self.loader.loaded_at.isoformat() if self.loader.loaded_at else None,
            "rows": len(self.loader.rows),
            "semantics": len(self.loader.semantics),
            "discarded": self.loader.discarded,
            "pending": self.session.total_pending(),
            "unconfirmed": len(self.session.unconfirmed()),
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def set_edit(self, key: ResonanceKey, intensity: float | None = None, enabled: bool | None = None) -> Patch:
        return self.session.set_edit(key, intensity=intensity, enabled=enabled)

    def clear_group(self, tag: str) -> int:
        return self.session.clear_group(tag)

    def autofill(self, tag: str, query: ViewQuery | None = None) -> int:
        settings = self.config.session
        return bulk.autofill(
            self.view(tag, query),
            self.session,
            defaults=settings.autofill_defaults,
            fallback=settings.autofill_fallback,
        )

    def normalize(self, tag: str, query: ViewQuery | None = None) -> int:
        return bulk.normalize(self.view(tag, query), self.session, cap=self.config.session.normalize_cap)

    def random_soft(self, tag: str, query: ViewQuery | None = None, rng: SignSource | None = None) -> int:
        return bulk.random_soft(self.view(tag, query), self.session, rng=rng)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    async def save_group(self, tag: str) -> SaveResult:
        result = await self.pipeline.save_group(tag)
        if not result.ok:
            self.logger.warning("Group %s left with %d pending edit(s): %s", tag, result.pending, result.error)
        return result
