"""
kinetophone: timeline cue engine

Tracks a virtual playback clock over 0..total_duration and, as it plays,
changes rate, pauses or seeks, emits 'enter'/'exit' events for the named
per-channel intervals ("timings") that become active or inactive. It is
the engine behind caption and cue synchronization: drive one clock, fan
out interval-membership transitions across many independent channels.

Architecture:
    Clock → Tick Controller → Active-Set Resolver → listeners

Version: 1.0.0
"""

__version__ = "1.0.0"

from .engine.kinetophone import Kinetophone
from .engine.clock import ManualClock, WallClock
from .errors import (
    KinetophoneError,
    MissingTotalDuration,
    InvalidDuration,
    DuplicateChannel,
    UnknownChannel,
    ConflictingBounds,
    InvalidTiming,
    ConfigError,
)
from .timing.normalizer import TimingDeclaration

__all__ = [
    "Kinetophone",
    "ManualClock",
    "WallClock",
    "TimingDeclaration",
    "KinetophoneError",
    "MissingTotalDuration",
    "InvalidDuration",
    "DuplicateChannel",
    "UnknownChannel",
    "ConflictingBounds",
    "InvalidTiming",
    "ConfigError",
    "__version__",
]
