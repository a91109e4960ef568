"""
Timing Normalizer

Turns a user-supplied timing declaration into a canonical half-open
interval [start, end). A declaration may give an explicit ``end``, a
``duration``, or neither (a point event one time unit wide), but never both.

Declarations can be plain mappings::

    {'start': 5, 'end': 10, 'data': 'hi'}

or TimingDeclaration instances. The normalized form keeps a reference to
the declaration so that listeners only ever see the fields the caller
originally supplied.
"""

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from ..errors import ConflictingBounds, InvalidTiming

# Width of a timing declared with neither end nor duration
POINT_WIDTH = 1


@dataclass(frozen=True)
class TimingDeclaration:
    """A timing as declared by the caller."""
    start: float
    end: Optional[float] = None
    duration: Optional[float] = None
    data: Any = None

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> 'TimingDeclaration':
        if 'start' not in raw or raw['start'] is None:
            raise InvalidTiming(f"Timing has no 'start': {dict(raw)!r}")
        return cls(
            start=raw['start'],
            end=raw.get('end'),
            duration=raw.get('duration'),
            data=raw.get('data'),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {'start': self.start}
        if self.data is not None:
            result['data'] = self.data
        if self.end is not None:
            result['end'] = self.end
        if self.duration is not None:
            result['duration'] = self.duration
        return result


TimingLike = Union[TimingDeclaration, Mapping[str, Any]]


@dataclass(frozen=True, eq=False)
class NormalizedTiming:
    """
    Canonical [start, end) interval for one declaration.

    Compared by identity: two identical declarations on the same channel
    are still two distinct timings, each entering and exiting on its own.
    """
    start: float
    end: float
    declaration: TimingDeclaration

    @property
    def data(self) -> Any:
        return self.declaration.data

    def contains(self, time: float) -> bool:
        """True if ``time`` lies in [start, end)."""
        return self.start <= time < self.end


def as_declaration(timing: TimingLike) -> TimingDeclaration:
    if isinstance(timing, TimingDeclaration):
        if timing.start is None:
            raise InvalidTiming("Timing has no 'start'")
        return timing
    return TimingDeclaration.from_mapping(timing)


def normalize_timing(timing: TimingLike) -> NormalizedTiming:
    """
    Normalize a timing declaration.

    Args:
        timing: Mapping or TimingDeclaration

    Returns:
        NormalizedTiming with end > start

    Raises:
        ConflictingBounds: both 'end' and 'duration' were given
        InvalidTiming: 'start' is missing or the interval is empty
    """
    declaration = as_declaration(timing)
    start = declaration.start

    if declaration.end is None and declaration.duration is None:
        end = start + POINT_WIDTH
    elif declaration.end is None:
        end = start + declaration.duration
    elif declaration.duration is None:
        end = declaration.end
    else:
        raise ConflictingBounds("Cannot specify both 'end' and 'duration'")

    if not end > start:
        raise InvalidTiming(f"Timing must end after it starts (start={start}, end={end})")

    return NormalizedTiming(start=start, end=end, declaration=declaration)


def project_timing(channel_name: str, timing: NormalizedTiming) -> Dict[str, Any]:
    """
    Public projection of a timing as delivered to listeners and queries.

    Only the fields the caller declared are echoed back; a synthesized
    ``end`` is never included.
    """
    result = {'name': channel_name}
    result.update(timing.declaration.to_dict())
    return result
