"""
Active-Set Resolver

Makes a channel's active set consistent with the clock and emits the
transitions needed to get there.

A resolution covers either a single point (``last_time == current_time``,
used for seeks and the first tick) or the window (last_time, current_time]
that the clock swept since the previous resolved time.

    1. Candidates: Range Index query at the point, or over the window
    2. Exit pass:  active timings no longer containing current_time
    3. Enter pass: candidates live at current_time and not already active
    4. Passing:    candidates that began and ended inside the window emit
                   their enter immediately followed by their exit

Every exit of a previously active timing is emitted before any enter, and
timings that stay active enter before the passing pairs. A timing shorter
than the gap between two resolved times is therefore still announced once.

Stale timings are removed from the active set (high index first, from a
snapshot) before any listener runs and wait in ``channel.exiting`` until
their exit is emitted. A listener may resolve the same channel again, e.g.
by seeking: the nested resolution reclaims a pending timing that is live at
its own time without a second enter, and the interrupted resolution stops
entering as soon as it sees the channel's generation change.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from ..timing.normalizer import NormalizedTiming, project_timing
from .channel_store import Channel
from .events import EventBus

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Transitions produced by one resolution of one channel, in emission order."""
    channel: str
    entered: List[NormalizedTiming] = field(default_factory=list)
    exited: List[NormalizedTiming] = field(default_factory=list)
    superseded: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.entered or self.exited)


class ActiveSetResolver:
    """Computes and emits enter/exit transitions for channels."""

    def __init__(self, bus: EventBus):
        self.bus = bus

    def _emit(self, kind: str, channel: Channel, timing: NormalizedTiming):
        payload = project_timing(channel.name, timing)
        self.bus.emit(kind, payload)
        self.bus.emit(f"{kind}:{channel.name}", payload)

    def _exit(self, channel: Channel, timing: NormalizedTiming, result: Resolution):
        # Reclaimed by a nested resolution: still active, no exit owed
        if not channel.take_exiting(timing):
            return
        result.exited.append(timing)
        self._emit('exit', channel, timing)

    def _enter(self, channel: Channel, timing: NormalizedTiming, result: Resolution):
        result.entered.append(timing)
        self._emit('enter', channel, timing)

    def resolve(self, channel: Channel, last_time: float, current_time: float) -> Resolution:
        """
        Resolve ``channel`` over (last_time, current_time].

        Args:
            channel: Channel to resolve
            last_time: Previously resolved time; equal to current_time for a point
            current_time: Clock time the active set must reflect

        Returns:
            Resolution listing entered and exited timings
        """
        result = Resolution(channel=channel.name)
        channel.generation += 1
        generation = channel.generation

        if last_time == current_time:
            candidates = channel.query(current_time)
        else:
            candidates = channel.query(last_time, current_time)

        # Exit pass: remove high-to-low so earlier indices stay valid
        snapshot = list(channel.active)
        previously_active = {id(timing) for timing in snapshot}
        stale = [i for i, timing in enumerate(snapshot) if not timing.contains(current_time)]
        for i in reversed(stale):
            del channel.active[i]
        channel.exiting.extend(snapshot[i] for i in stale)

        # Pending exits are owed even if a listener resolves the channel again
        for i in stale:
            self._exit(channel, snapshot[i], result)

        if channel.generation != generation:
            return self._superseded(channel, result, last_time, current_time)

        live, passing = [], []
        for timing in candidates:
            if id(timing) in previously_active or channel.is_active(timing):
                continue
            if channel.is_exiting(timing):
                # Exit still pending in an outer resolution: take it back
                if timing.contains(current_time):
                    channel.take_exiting(timing)
                    channel.active.append(timing)
                continue
            if timing.start > current_time or timing.end <= last_time:
                continue
            if timing.contains(current_time):
                live.append(timing)
            else:
                passing.append(timing)

        # Enter pass: each timing joins the active set before its enter runs
        for timing in live:
            channel.active.append(timing)
            self._enter(channel, timing, result)
            if channel.generation != generation:
                return self._superseded(channel, result, last_time, current_time)

        for timing in passing:
            channel.exiting.append(timing)
            self._enter(channel, timing, result)
            self._exit(channel, timing, result)
            if channel.generation != generation:
                return self._superseded(channel, result, last_time, current_time)

        if result.changed:
            logger.debug(
                f"Resolved '{channel.name}' ({last_time}, {current_time}]: "
                f"+{len(result.entered)} -{len(result.exited)}"
            )
        return result

    def _superseded(self, channel: Channel, result: Resolution, last_time: float, current_time: float) -> Resolution:
        logger.debug(
            f"Resolution of '{channel.name}' ({last_time}, {current_time}] "
            f"superseded by a listener"
        )
        result.superseded = True
        return result

    def clear(self, channel: Channel) -> List[NormalizedTiming]:
        """Empty the active set, emitting an exit for every active timing."""
        channel.generation += 1
        result = Resolution(channel=channel.name)
        pending = list(channel.active)
        del channel.active[:]
        channel.exiting.extend(pending)
        for timing in pending:
            self._exit(channel, timing, result)
        return result.exited
