"""Configuration dataclasses for the resonance admin.

Replaces module-level globals with type-safe, testable config objects.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta

from resonance.hub.constants import (
    DEFAULT_AUTOFILL_INTENSITY,
    NORMALIZE_CAP,
    ROLE_DEFAULT_INTENSITY,
    SAVE_STRATEGIES,
)


@dataclass
class SupabaseConfig:
    """Remote dataset connection settings (Supabase / PostgREST)."""
    url: str = ""
    anon_key: str = ""
    resonance_table: str = "emoji_media"
    semantics_table: str = "media_semantics"
    timeout_s: float = 15.0

    @property
    def configured(self) -> bool:
        return bool(self.url and self.anon_key)

    @property
    def rest_url(self) -> str:
        return f"{self.url.rstrip('/')}/rest/v1"

    @classmethod
    def from_env(cls):
        return cls(
            url=os.environ.get("SUPABASE_URL", "").strip(),
            anon_key=os.environ.get("SUPABASE_ANON_KEY", "").strip(),
            resonance_table=os.environ.get("RESONANCE_TABLE", cls.resonance_table),
            semantics_table=os.environ.get("SEMANTICS_TABLE", cls.semantics_table),
        )


@dataclass
class SessionConfig:
    """Edit session, view and bulk operation tuning."""
    recency_window: timedelta = field(default_factory=lambda: timedelta(days=2))
    normalize_cap: int = NORMALIZE_CAP
    autofill_defaults: dict = field(default_factory=lambda: dict(ROLE_DEFAULT_INTENSITY))
    autofill_fallback: int = DEFAULT_AUTOFILL_INTENSITY


@dataclass
class SaveConfig:
    """How pending edits are flushed to the remote store."""
    strategy: str = "per_row"
    bulk_url: str = ""

    def __post_init__(self) -> None:
        if self.strategy not in SAVE_STRATEGIES:
            raise ValueError(f"strategy must be one of {sorted(SAVE_STRATEGIES)}, got {self.strategy!r}")

    @classmethod
    def from_env(cls):
        return cls(
            strategy=os.environ.get("RESONANCE_SAVE_STRATEGY", cls.strategy),
            bulk_url=os.environ.get("RESONANCE_BULK_SAVE_URL", ""),
        )


@dataclass
class ServerConfig:
    """HTTP surface settings."""
    host: str = "127.0.0.1"
    port: int = 8010


@dataclass
class AppConfig:
    """Top-level config composing all sub-configs."""
    supabase: SupabaseConfig = field(default_factory=SupabaseConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    save: SaveConfig = field(default_factory=SaveConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls):
        """Create config from environment variables (for production use)."""
        return cls(
            supabase=SupabaseConfig.from_env(),
            session=SessionConfig(),
            save=SaveConfig.from_env(),
            server=ServerConfig(),
        )
