"""Save pipeline — flushes one group's pending patches to the remote store.

Per-row writes are sequential with no cross-row transaction. When a write
fails the pipeline stops, keeps every pending patch for the group, and
reports exactly which rows were already committed remotely; those keys are
flagged unconfirmed in the session until the group is saved or cleared.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from resonance.config import SaveConfig
from resonance.hub.constants import SAVE_FAILED, SAVE_NOTHING, SAVE_OK
from resonance.models import ResonanceKey
from resonance.remote.client import RemoteError, SupabaseClient, to_write_row
from resonance.store.loader import DatasetLoader
from resonance.store.session import EditSession

logger = logging.getLogger(__name__)


@dataclass
class SaveResult:
    """Outcome of one save_group call."""

    tag: str
    status: str
    committed: list[ResonanceKey] = field(default_factory=list)
    failed_key: ResonanceKey | None = None
    error: str | None = None
    pending: int = 0
    reloaded: bool = False

    @property
    def ok(self) -> bool:
        return self.status in (SAVE_OK, SAVE_NOTHING)

    def to_dict(self) -> dict:
        return {
            "tag": self.tag,
            "status": self.status,
            "ok": self.ok,
            "committed": [key._asdict() for key in self.committed],
            "failed_key": self.failed_key._asdict() if self.failed_key else None,
            "error": self.error,
            "pending": self.pending,
            "reloaded": self.reloaded,
        }


class SavePipeline:
    """Writes a group's patches, then drops the written ones and reloads on full success.

    Edits recorded while the writes were in flight stay pending.
    """

    def __init__(
        self,
        client: SupabaseClient,
        session: EditSession,
        loader: DatasetLoader,
        config: SaveConfig | None = None,
    ):
        self.client = client
        self.session = session
        self.loader = loader
        self.config = config or SaveConfig()

    async def save_group(self, tag: str) -> SaveResult:
        """Flush all pending patches of group ``tag``."""
        patches = self.session.patches(tag)
        if not patches:
            logger.info("Nothing to save for group %s", tag)
            return SaveResult(tag=tag, status=SAVE_NOTHING)

        if self.config.strategy == "bulk":
            result = await self._save_bulk(tag, patches)
        else:
            result = await self._save_per_row(tag, patches)
        if result.status == SAVE_FAILED:
            result.pending = self.session.pending_count(tag)
            return result

        self.session.discard(patches)
        result.reloaded = await self.loader.load()
        result.pending = self.session.pending_count(tag)
        logger.info("Saved %d row(s) for group %s (reloaded=%s)", len(result.committed), tag, result.reloaded)
        return result

    async def _save_per_row(self, tag: str, patches) -> SaveResult:
        committed: list[ResonanceKey] = []
        for key, patch in patches.items():
            try:
                await self.client.update_resonance(key, patch)
            except RemoteError as e:
                self.session.mark_unconfirmed(committed)
                logger.warning(
                    "Save of group %s failed at %s after %d committed row(s): %s",
                    tag,
                    key,
                    len(committed),
                    e,
                )
                return SaveResult(tag=tag, status=SAVE_FAILED, committed=committed, failed_key=key, error=str(e))
            committed.append(key)
        return SaveResult(tag=tag, status=SAVE_OK, committed=committed)

    async def _save_bulk(self, tag: str, patches) -> SaveResult:
        rows = [to_write_row(key, patch) for key, patch in patches.items()]
        try:
            await self.client.bulk_save(self.config.bulk_url, rows)
        except RemoteError as e:
            logger.warning("Bulk save of group %s failed: %s", tag, e)
            return SaveResult(tag=tag, status=SAVE_FAILED, error=str(e))
        return SaveResult(tag=tag, status=SAVE_OK, committed=list(patches))
