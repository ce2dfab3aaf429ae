from .mapper import (
    snapshot_from_character,
    stats_from,
)

__all__ = [
    "snapshot_from_character",
    "stats_from",
]
