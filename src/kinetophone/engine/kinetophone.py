"""
Kinetophone - timeline cue engine

Drives one virtual playback clock over 0..total_duration and fans out
interval-membership transitions across many independent channels.

Control flow:

    Clock ──tick──▶ Tick Controller ──window──▶ Active-Set Resolver ──▶ listeners
                        ▲                                ▲
    play/pause/seek ────┘ Playback Controller ───seek────┘

Tick Controller:
    Coalesces raw clock callbacks. A new timeupdate + resolution batch only
    fires once at least ``time_update_resolution`` has elapsed since the last
    resolved time, and that batch covers the whole span
    (last_resolved, now], so nothing between ticks is skipped. Ticks that
    arrive while paused, or that were read before a seek, are dropped.
    Crossing total_duration pauses, rewinds to 0, exits every active timing
    and emits 'end'.

Events:
    play, pause                      no payload
    timeupdate, seeking, seek        time
    enter, enter:<channel>           {name, start, data?, end?, duration?}
    exit, exit:<channel>             {name, start, data?, end?, duration?}
    end                              no payload

Usage:
    engine = Kinetophone([{'name': 'captions', 'timings': [{'start': 5, 'end': 10}]}], 1000)
    engine.on('enter:captions', show)
    engine.on('exit:captions', hide)
    engine.play()
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..errors import KinetophoneError, MissingTotalDuration
from ..timing.normalizer import TimingLike, project_timing
from .channel_store import Channel, ChannelStore
from .clock import Clock, WallClock
from .events import EventBus
from .resolver import ActiveSetResolver, Resolution

logger = logging.getLogger(__name__)

DEFAULT_TICK_RESOLUTION = 33

ChannelSelection = Optional[Union[str, Iterable[str]]]


class Kinetophone(EventBus):
    """
    Timeline cue engine.

    Listeners are registered with ``on``/``once``/``off``; each engine keeps
    its own listener table.
    """

    def __init__(
        self,
        channels: Optional[Iterable[Mapping[str, Any]]] = None,
        total_duration: Optional[float] = None,
        time_update_resolution: Optional[float] = None,
        tick_immediately: bool = False,
        clock: Optional[Clock] = None
    ):
        """
        Initialize the engine (paused at time 0).

        Args:
            channels: Channel declarations: {'name': str, 'timings': [...]}
            total_duration: Length of the timeline (required)
            time_update_resolution: Minimum elapsed time between resolutions
            tick_immediately: Resolve time 0 right after construction
            clock: Clock driving playback (default: WallClock)
        """
        if total_duration is None:
            raise MissingTotalDuration("You must specify a total duration")

        super().__init__()

        # Re-entrant: listeners may call back into the engine
        self._lock = threading.RLock()
        self._store = ChannelStore(total_duration)
        self._resolver = ActiveSetResolver(self)

        self.stats = {
            'ticks': 0,
            'resolutions': 0,
            'enters': 0,
            'exits': 0,
            'ends': 0,
        }

        for channel in channels or []:
            self.add_channel(channel)

        self._playing = False
        self._clock = clock or WallClock()
        self._clock.register(self._on_tick)
        self._last_resolved_time: Optional[float] = None
        # Bumped whenever the clock is repositioned
        self._epoch = 0

        self._tick_resolution = time_update_resolution or DEFAULT_TICK_RESOLUTION
        if tick_immediately:
            self._clock.defer(self._tick_immediately)

        logger.debug(
            f"Kinetophone initialized: {len(self._store)} channels, "
            f"total_duration={total_duration}, resolution={self._tick_resolution}"
        )

    # ------------------------------------------------------------------
    # Channels
    # ------------------------------------------------------------------

    def add_channel(self, channel: Mapping[str, Any]):
        """
        Add a channel.

        Args:
            channel: {'name': str, 'timings': [timing, ...]} (timings optional)

        Raises:
            DuplicateChannel: a channel with this name exists
        """
        if 'name' not in channel:
            raise KinetophoneError(f"Channel declaration has no 'name': {dict(channel)!r}")
        with self._lock:
            self._store.add_channel(channel['name'], channel.get('timings') or [])

    def add_timing(self, channel_name: str, timing: TimingLike):
        """
        Add a timing to an existing channel.

        Raises:
            UnknownChannel: no such channel
            ConflictingBounds: timing declares both end and duration
        """
        with self._lock:
            self._store.add_timing(channel_name, timing)

    @property
    def channels(self) -> List[str]:
        return self._store.names()

    @property
    def total_duration(self) -> float:
        return self._store.total_duration

    @total_duration.setter
    def total_duration(self, value: float):
        # Rebuilt channels start with empty active sets
        with self._lock:
            self._store.set_total_duration(value)

    @property
    def tick_resolution(self) -> float:
        return self._tick_resolution

    # ------------------------------------------------------------------
    # Tick Controller
    # ------------------------------------------------------------------

    def _on_tick(self, time: float):
        """Clock callback with elapsed virtual time."""
        with self._lock:
            # Read before a pause, seek or rewind that won the lock first
            if not self._playing or time > self._clock.current_time:
                logger.debug(f"Dropping stale tick at {time}")
                return
            self._tick(time)

    def _tick_immediately(self):
        with self._lock:
            self._tick(0)

    def _tick(self, time: float):
        self.stats['ticks'] += 1
        epoch = self._epoch

        if self._last_resolved_time is None:
            window = (time, time)
        elif time - self._last_resolved_time >= self._tick_resolution:
            window = (self._last_resolved_time, time)
        else:
            window = None

        if window is not None:
            self._last_resolved_time = time
            self.emit('timeupdate', time)
            self._resolve_all(window[0], window[1], epoch)

        if self._epoch == epoch and time > self._store.total_duration:
            self._end()

    def _end(self):
        logger.info(f"Reached end of timeline ({self._store.total_duration})")
        self.pause()
        self._epoch += 1
        epoch = self._epoch
        self._clock.set(0)
        self._last_resolved_time = None
        self._clear_all(epoch)
        self.stats['ends'] += 1
        self.emit('end')

    def _record(self, resolution: Resolution):
        self.stats['resolutions'] += 1
        self.stats['enters'] += len(resolution.entered)
        self.stats['exits'] += len(resolution.exited)

    def _resolve_all(self, last_time: float, current_time: float, epoch: int):
        for channel in self._store:
            # A listener repositioned the clock; its own resolution stands
            if self._epoch != epoch:
                break
            self._record(self._resolver.resolve(channel, last_time, current_time))

    def _clear_all(self, epoch: int):
        for channel in self._store:
            if self._epoch != epoch:
                break
            self.stats['exits'] += len(self._resolver.clear(channel))

    # ------------------------------------------------------------------
    # Playback Controller
    # ------------------------------------------------------------------

    def play(self):
        """Start playback; restarts from 0 when at or past the end."""
        with self._lock:
            if self._playing:
                return

            if self._clock.current_time >= self._store.total_duration:
                logger.debug("Play from end of timeline: rewinding to 0")
                self._epoch += 1
                self._clock.set(0)
                self._last_resolved_time = None
                self._clear_all(self._epoch)

            self._playing = True
            logger.info(f"Play at {self._clock.current_time:.1f}")
            self.emit('play')
            self._clock.start()

    def pause(self):
        with self._lock:
            if not self._playing:
                return

            self._playing = False
            logger.info(f"Pause at {self._clock.current_time:.1f}")
            self.emit('pause')
            self._clock.pause()

    @property
    def playing(self) -> bool:
        return self._playing

    def seek(self, new_time: float):
        """
        Jump to ``new_time`` (clamped to [0, total_duration]) and resolve
        every channel at that point.

        A seek issued by a listener while this one is running takes over:
        the outer seek stops resolving and does not emit 'seek'.
        """
        with self._lock:
            new_time = min(max(new_time, 0), self._store.total_duration)
            logger.debug(f"Seek to {new_time}")

            self._epoch += 1
            epoch = self._epoch
            self._last_resolved_time = new_time
            self.emit('seeking', new_time)
            if self._epoch != epoch:
                return
            self._clock.set(new_time)
            self.emit('timeupdate', new_time)
            if self._epoch != epoch:
                return
            self._resolve_all(new_time, new_time, epoch)
            if self._epoch == epoch:
                self.emit('seek', new_time)

    @property
    def current_time(self) -> float:
        return self._clock.current_time

    @current_time.setter
    def current_time(self, new_time: float):
        self.seek(new_time)

    @property
    def playback_rate(self) -> float:
        return self._clock.get_rate()

    @playback_rate.setter
    def playback_rate(self, rate: float):
        with self._lock:
            self._clock.set_rate(rate)
            logger.debug(f"Playback rate set to {rate}")

    # ------------------------------------------------------------------
    # Query Facade
    # ------------------------------------------------------------------

    def _find_timings(self, channels: ChannelSelection, predicate, *query) -> Dict[str, List[Dict[str, Any]]]:
        with self._lock:
            return {
                channel.name: [
                    project_timing(channel.name, timing)
                    for timing in channel.query(*query)
                    if predicate(timing)
                ]
                for channel in self._store.select(channels)
            }

    def get_timings_at(self, time: float, channels: ChannelSelection = None) -> Dict[str, List[Dict[str, Any]]]:
        """
        Timings containing ``time``, per channel.

        Args:
            time: Point to query
            channels: None for all, a channel name, or an iterable of names

        Raises:
            UnknownChannel: a requested channel does not exist
        """
        return self._find_timings(channels, lambda timing: timing.contains(time), time)

    def get_timings_between(
        self,
        start: float,
        end: float,
        channels: ChannelSelection = None
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Timings overlapping [start, end), per channel.

        A timing ending exactly at ``end`` is excluded.
        """
        return self._find_timings(channels, lambda timing: timing.end != end, start, end)

    # ------------------------------------------------------------------
    # Introspection / lifecycle
    # ------------------------------------------------------------------

    def active_timings(self, channel_name: str) -> List[Dict[str, Any]]:
        """Projections of the timings currently active on a channel."""
        with self._lock:
            channel: Channel = self._store.get(channel_name)
            return [project_timing(channel.name, timing) for timing in channel.active]

    def status(self) -> Dict[str, Any]:
        """Snapshot of playback state for monitoring."""
        with self._lock:
            return {
                'current_time': self._clock.current_time,
                'total_duration': self._store.total_duration,
                'playing': self._playing,
                'playback_rate': self._clock.get_rate(),
                'tick_resolution': self._tick_resolution,
                'last_resolved_time': self._last_resolved_time,
                'channels': {
                    channel.name: {
                        'timings': len(channel.timings),
                        'active': [project_timing(channel.name, t) for t in channel.active],
                    }
                    for channel in self._store
                },
                'stats': dict(self.stats),
            }

    def close(self):
        """Pause playback and release the clock."""
        self.pause()
        self._clock.close()
