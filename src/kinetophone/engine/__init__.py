"""Core cue engine - clock, channels, resolution and playback.

Contains:
- Kinetophone: Tick Controller, Playback Controller and Query Facade
- ActiveSetResolver: enter/exit diffing per channel
- ChannelStore: channels, declared timings and their range indexes
- WallClock / ManualClock: clocks driving playback
- EventBus: instance-scoped publish/subscribe
"""

from .channel_store import Channel, ChannelStore
from .clock import Clock, ManualClock, WallClock
from .events import EventBus
from .kinetophone import Kinetophone, DEFAULT_TICK_RESOLUTION
from .resolver import ActiveSetResolver, Resolution

__all__ = [
    'Kinetophone',
    'DEFAULT_TICK_RESOLUTION',
    'ActiveSetResolver',
    'Resolution',
    'Channel',
    'ChannelStore',
    'Clock',
    'ManualClock',
    'WallClock',
    'EventBus',
]
