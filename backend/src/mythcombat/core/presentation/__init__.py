from .effect_queue import EffectQueue
from .effects import VisualEffect, build_visual_effects
from .history import LineHistoryBuffer, line_similarity
from .projector import NarrationLine, PresentationProjector, Projection
from .tone import select_tone_mode

__all__ = [
    "EffectQueue",
    "LineHistoryBuffer",
    "NarrationLine",
    "PresentationProjector",
    "Projection",
    "VisualEffect",
    "build_visual_effects",
    "line_similarity",
    "select_tone_mode",
]
