"""
Channel Store

Owns every channel: its declared timings (the source of truth), a Range
Index built from them (a derived, rebuildable cache) and the set of
currently active timings.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional

from ..errors import DuplicateChannel, InvalidDuration, UnknownChannel
from ..timing.normalizer import NormalizedTiming, TimingLike, normalize_timing
from ..timing.range_index import RangeIndex

logger = logging.getLogger(__name__)


@dataclass
class Channel:
    """
    One independently resolved namespace of timings.

    ``exiting`` holds timings already removed from ``active`` whose exit has
    not been emitted yet. ``generation`` counts resolutions and clears so an
    interrupted resolution can tell it was superseded.
    """
    name: str
    timings: List[NormalizedTiming] = field(default_factory=list)
    index: RangeIndex = field(default_factory=RangeIndex)
    active: List[NormalizedTiming] = field(default_factory=list)
    exiting: List[NormalizedTiming] = field(default_factory=list)
    generation: int = 0

    def is_active(self, timing: NormalizedTiming) -> bool:
        return any(t is timing for t in self.active)

    def is_exiting(self, timing: NormalizedTiming) -> bool:
        return any(t is timing for t in self.exiting)

    def take_exiting(self, timing: NormalizedTiming) -> bool:
        """Remove ``timing`` from the pending exits; False if it is not there."""
        for i, pending in enumerate(self.exiting):
            if pending is timing:
                del self.exiting[i]
                return True
        return False

    def query(self, start: float, end: Optional[float] = None) -> List[NormalizedTiming]:
        return self.index.query(start, end)


def _build_channel(name: str, timings: List[NormalizedTiming]) -> Channel:
    index = RangeIndex(capacity_hint=len(timings))
    for timing in timings:
        index.insert(timing.start, timing.end, timing)
    return Channel(name=name, timings=timings, index=index)


class ChannelStore:
    """Registry of channels keyed by unique name, in insertion order."""

    def __init__(self, total_duration: float):
        self.total_duration = total_duration
        self._channels: Dict[str, Channel] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._channels

    def __iter__(self) -> Iterator[Channel]:
        return iter(list(self._channels.values()))

    def __len__(self) -> int:
        return len(self._channels)

    def names(self) -> List[str]:
        return list(self._channels)

    def get(self, name: str) -> Channel:
        try:
            return self._channels[name]
        except KeyError:
            raise UnknownChannel(name) from None

    def select(self, names: Optional[Iterable[str]] = None) -> List[Channel]:
        """
        Resolve a channel selection.

        Args:
            names: None for every channel, a single name, or an iterable of names
        """
        if names is None:
            return list(self._channels.values())
        if isinstance(names, str):
            names = [names]
        return [self.get(name) for name in names]

    def add_channel(self, name: str, timings: Iterable[TimingLike] = ()) -> Channel:
        """
        Create a channel from its declared timings.

        Every timing is normalized before the channel is registered, so an
        invalid timing leaves the store untouched.

        Raises:
            DuplicateChannel: ``name`` already exists
        """
        if name in self._channels:
            raise DuplicateChannel(name)

        normalized = [normalize_timing(timing) for timing in (timings or ())]
        channel = _build_channel(name, normalized)
        self._channels[name] = channel

        logger.debug(f"Channel '{name}' added with {len(normalized)} timings")
        return channel

    def add_timing(self, channel_name: str, timing: TimingLike) -> NormalizedTiming:
        """
        Add a timing to an existing channel.

        The active set is not touched: the timing becomes active on the next
        resolution covering its interval.

        Raises:
            UnknownChannel: no such channel
        """
        channel = self.get(channel_name)
        normalized = normalize_timing(timing)

        channel.timings.append(normalized)
        channel.index.insert(normalized.start, normalized.end, normalized)
        return normalized

    def set_total_duration(self, total_duration: float):
        """
        Change the timeline bound and rebuild every channel.

        Declared timings are preserved; every index is rebuilt and every
        active set starts empty.

        Raises:
            InvalidDuration: ``total_duration`` is None
        """
        if total_duration is None:
            raise InvalidDuration("You must specify a non-null total duration")

        self.total_duration = total_duration
        self._channels = {
            name: _build_channel(name, list(channel.timings))
            for name, channel in self._channels.items()
        }
        logger.info(f"Total duration set to {total_duration}; rebuilt {len(self._channels)} channels")
