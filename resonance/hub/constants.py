"""Shared constants for the resonance store and its HTTP surface.

Vocabularies are defined here so the view, the bulk operations and the
API validate against the same sets.
"""

# Intensity bounds for every resonance row
INTENSITY_MIN = 0
INTENSITY_MAX = 10

# Roles a media item can play inside a group
ROLES = ("music", "video", "voice", "text", "shader", "background")
ROLE_FILTERS = frozenset({"all", *ROLES})

# Autofill table: role -> intensity
ROLE_DEFAULT_INTENSITY = {
    "background": 6,
    "music": 6,
    "video": 6,
    "shader": 5,
    "voice": 4,
    "text": 4,
}
DEFAULT_AUTOFILL_INTENSITY = 5

# Normalize: upper bound on the redistributed total of one role group
NORMALIZE_CAP = 30

# View vocabularies
STATUS_FILTERS = frozenset({"all", "enabled", "disabled", "recent"})
SORT_MODES = frozenset({"intensity", "created", "name"})

# Save pipeline strategies
SAVE_STRATEGIES = frozenset({"per_row", "bulk"})
SAVE_NOTHING = "nothing_to_save"
SAVE_OK = "saved"
SAVE_FAILED = "failed"
