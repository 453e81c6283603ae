"""Resonance admin — local edit session and bulk normalization for tag/media resonance rows."""

__version__ = "0.3.0"
