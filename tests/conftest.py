"""Shared test fixtures for the resonance test suite."""

import copy
from datetime import UTC, datetime

import pytest
import pytest_asyncio

from resonance.config import AppConfig, SaveConfig, SupabaseConfig
from resonance.hub.core import ResonanceHub
from resonance.models import Patch, ResonanceKey, ResonanceRow
from resonance.remote.client import RemoteError
from resonance.store.loader import coerce_resonance_rows
from resonance.store.session import EditSession

# --- Common test data ---

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)

SEA = "🌊"
FIRE = "🔥"

SAMPLE_RESONANCE = [
    {
        "emoji": SEA,
        "media_path": "music/ocean_drift.mp3",
        "role": "music",
        "intensity": 2,
        "enabled": True,
        "created_at": "2026-03-09T18:00:00+00:00",
    },
    {
        "emoji": SEA,
        "media_path": "music/tide_pool.mp3",
        "role": "music",
        "intensity": 4,
        "enabled": True,
        "created_at": "2026-02-01T10:00:00+00:00",
    },
    {
        "emoji": SEA,
        "media_path": "music/undertow.mp3",
        "role": "music",
        "intensity": 4,
        "enabled": True,
        "created_at": None,
    },
    {
        "emoji": SEA,
        "media_path": "voice/breathe_in.wav",
        "role": "voice",
        "intensity": 7,
        "enabled": False,
        "created_at": "2026-03-10T08:00:00Z",
    },
    {
        "emoji": SEA,
        "media_path": "video/waves_loop.mp4",
        "role": "video",
        "intensity": 0,
        "enabled": True,
        "created_at": "2026-01-15T00:00:00+00:00",
    },
    {
        "emoji": FIRE,
        "media_path": "music/ember.mp3",
        "role": "music",
        "intensity": 8,
        "enabled": True,
        "created_at": "2026-03-01T00:00:00+00:00",
    },
    {
        "emoji": FIRE,
        "media_path": "shader/flame.glsl",
        "role": "shader",
        "intensity": 5,
        "enabled": True,
        "created_at": None,
    },
]

SAMPLE_SEMANTICS = [
    {
        "path": "music/ocean_drift.mp3",
        "category": "music",
        "climate": "calm",
        "energy": 0.3,
        "role": "background",
        "tags": ["sea", "slow"],
        "enabled": True,
    },
    {
        "path": "music/tide_pool.mp3",
        "category": "music",
        "climate": "deep",
        "energy": 0.5,
        "tags": ["water"],
        "enabled": True,
    },
    {
        "path": "voice/breathe_in.wav",
        "category": "voice",
        "climate": "luminous",
        "energy": 0.2,
        "tags": None,
        "enabled": True,
    },
]


def sea_key(media_path: str, role: str) -> ResonanceKey:
    return ResonanceKey(SEA, media_path, role)


OCEAN = sea_key("music/ocean_drift.mp3", "music")
TIDE = sea_key("music/tide_pool.mp3", "music")
UNDERTOW = sea_key("music/undertow.mp3", "music")
BREATHE = sea_key("voice/breathe_in.wav", "voice")
WAVES = sea_key("video/waves_loop.mp4", "video")
EMBER = ResonanceKey(FIRE, "music/ember.mp3", "music")


def make_row(  # noqa: PLR0913
    media_path: str,
    role: str = "music",
    intensity: int = 5,
    enabled: bool = True,
    tag: str = SEA,
    created_at: datetime | None = None,
) -> ResonanceRow:
    """Build a ResonanceRow with sensible defaults."""
    return ResonanceRow(
        tag=tag,
        media_path=media_path,
        role=role,
        intensity=intensity,
        enabled=enabled,
        created_at=created_at,
    )


def sample_rows() -> list[ResonanceRow]:
    rows, _ = coerce_resonance_rows(copy.deepcopy(SAMPLE_RESONANCE))
    return rows


def session_for(rows: list[ResonanceRow]) -> EditSession:
    """EditSession whose base lookup is a plain dict of ``rows``."""
    by_key = {row.key: row for row in rows}
    return EditSession(by_key.get)


# ============================================================================
# Fake remote
# ============================================================================


class FakeRemote:
    """In-memory stand-in for SupabaseClient.

    PATCHes are applied to its rows so a reload observes them. Keys in
    ``fail_on`` are rejected; ``fail_fetch`` makes every read fail.
    """

    def __init__(self, resonance=None, semantics=None):
        self.config = SupabaseConfig(url="https://example.supabase.co", anon_key="anon-key")
        self.resonance = copy.deepcopy(SAMPLE_RESONANCE if resonance is None else resonance)
        self.semantics = copy.deepcopy(SAMPLE_SEMANTICS if semantics is None else semantics)
        self.fail_fetch: str | None = None
        self.fail_on: set[ResonanceKey] = set()
        self.fail_bulk: str | None = None
        self.updates: list[tuple[ResonanceKey, Patch]] = []
        self.bulk_calls: list[tuple[str, list[dict]]] = []
        self.fetch_count = 0
        self.closed = False

    async def fetch_resonance(self):
        self.fetch_count += 1
        if self.fail_fetch:
            raise RemoteError(self.fail_fetch, status=503)
        return copy.deepcopy(self.resonance)

    async def fetch_semantics(self):
        if self.fail_fetch:
            raise RemoteError(self.fail_fetch, status=503)
        return copy.deepcopy(self.semantics)

    def _apply(self, key: ResonanceKey, intensity: int, enabled: bool) -> bool:
        for row in self.resonance:
            if (row.get("emoji"), row.get("media_path"), row.get("role")) == tuple(key):
                row["intensity"] = intensity
                row["enabled"] = enabled
                return True
        return False

    async def update_resonance(self, key, patch):
        if key in self.fail_on:
            raise RemoteError(f"update rejected for {key.media_path}", status=500)
        if not self._apply(key, patch.intensity, patch.enabled):
            raise RemoteError(f"No remote row matched {key.tag} / {key.media_path} / {key.role}")
        self.updates.append((key, patch))

    async def bulk_save(self, url, rows):
        self.bulk_calls.append((url, rows))
        if self.fail_bulk:
            raise RemoteError(self.fail_bulk, status=400)
        for row in rows:
            key = ResonanceKey(row["emoji"], row["media_path"], row["role"])
            self._apply(key, row["intensity"], row["enabled"])

    async def close(self):
        self.closed = True


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def hub(remote):
    """Hub over the fake remote, not yet loaded."""
    return ResonanceHub(AppConfig(supabase=remote.config), client=remote)


@pytest_asyncio.fixture
async def loaded_hub(hub):
    assert await hub.load()
    return hub


@pytest.fixture
def bulk_hub(remote):
    """Hub configured for the bulk save endpoint."""
    config = AppConfig(supabase=remote.config, save=SaveConfig(strategy="bulk", bulk_url="https://api.example.com/save"))
    return ResonanceHub(config, client=remote)
