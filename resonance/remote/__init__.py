"""Remote access — PostgREST client for resonance and semantics tables."""

from resonance.remote.client import RemoteError, SupabaseClient

__all__ = ["RemoteError", "SupabaseClient"]
