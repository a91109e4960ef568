"""
Playback clocks.

A clock advances a virtual time (milliseconds), optionally scaled by a
playback rate, and invokes registered callbacks with the elapsed virtual
time while it is running. The engine only relies on this contract:

    register(callback)    callback(elapsed_time) on every tick
    start() / pause()     resume / suspend ticking
    set(time)             reposition
    get_rate() / set_rate(rate)
    current_time          readable elapsed time
    defer(fn)             run fn asynchronously, outside the caller
    close()               release background resources

WallClock ticks from a background thread against the monotonic system
clock. ManualClock only moves when told to and is used for deterministic
simulation and tests.
"""

import logging
import threading
import time
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

TickCallback = Callable[[float], None]


class Clock:
    """Base class holding the callback registry."""

    def __init__(self, rate: float = 1.0):
        self._callbacks: List[TickCallback] = []
        self._rate = rate
        self._running = False

    def register(self, callback: TickCallback):
        self._callbacks.append(callback)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def current_time(self) -> float:
        raise NotImplementedError

    def start(self):
        raise NotImplementedError

    def pause(self):
        raise NotImplementedError

    def set(self, time_ms: float):
        raise NotImplementedError

    def get_rate(self) -> float:
        return self._rate

    def set_rate(self, rate: float) -> float:
        raise NotImplementedError

    def defer(self, fn: Callable[[], None]):
        raise NotImplementedError

    def close(self):
        pass

    def _fire(self, elapsed: float):
        for callback in list(self._callbacks):
            callback(elapsed)


class WallClock(Clock):
    """
    Real-time clock driven by a daemon thread.

    Virtual time = base + (monotonic elapsed since resume) * 1000 * rate,
    so a rate change or a reposition never makes time jump retroactively.
    """

    def __init__(self, interval: float = 0.01, rate: float = 1.0):
        """
        Initialize the clock (paused at time 0).

        Args:
            interval: Wall-clock seconds between tick callbacks
            rate: Playback rate multiplier
        """
        super().__init__(rate=rate)
        self.interval = interval
        self._base_ms = 0.0
        self._anchor: Optional[float] = None
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    def _elapsed_locked(self) -> float:
        if self._anchor is None:
            return self._base_ms
        return self._base_ms + (time.monotonic() - self._anchor) * 1000.0 * self._rate

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._elapsed_locked()

    def start(self):
        with self._lock:
            if self._running:
                return
            self._anchor = time.monotonic()
            self._running = True

        if self.thread is None or not self.thread.is_alive():
            self._stop_event.clear()
            self.thread = threading.Thread(
                target=self._run,
                name="WallClock",
                daemon=True
            )
            self.thread.start()

    def pause(self):
        with self._lock:
            if not self._running:
                return
            self._base_ms = self._elapsed_locked()
            self._anchor = None
            self._running = False

    def set(self, time_ms: float):
        with self._lock:
            self._base_ms = float(time_ms)
            if self._running:
                self._anchor = time.monotonic()

    def set_rate(self, rate: float) -> float:
        with self._lock:
            if self._running:
                self._base_ms = self._elapsed_locked()
                self._anchor = time.monotonic()
            self._rate = rate
        return rate

    def defer(self, fn: Callable[[], None]):
        timer = threading.Timer(0, fn)
        timer.daemon = True
        timer.start()

    def _run(self):
        """Tick loop (runs in background thread)."""
        while not self._stop_event.wait(self.interval):
            with self._lock:
                if not self._running:
                    continue
                elapsed = self._elapsed_locked()
            try:
                self._fire(elapsed)
            except Exception:
                logger.exception("Clock callback failed; pausing clock")
                self.pause()

    def close(self):
        """Stop the tick thread."""
        self.pause()
        self._stop_event.set()
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=2.0)
        self.thread = None


class ManualClock(Clock):
    """
    Clock that only advances when ``advance`` is called.

    Deferred functions are queued and run on ``flush``.
    """

    def __init__(self, rate: float = 1.0):
        super().__init__(rate=rate)
        self._time = 0.0
        self._deferred: List[Callable[[], None]] = []

    @property
    def current_time(self) -> float:
        return self._time

    def start(self):
        self._running = True

    def pause(self):
        self._running = False

    def set(self, time_ms: float):
        self._time = float(time_ms)

    def set_rate(self, rate: float) -> float:
        self._rate = rate
        return rate

    def defer(self, fn: Callable[[], None]):
        self._deferred.append(fn)

    def flush(self):
        """Run deferred functions queued so far."""
        pending, self._deferred = self._deferred, []
        for fn in pending:
            fn()

    def advance(self, delta_ms: float) -> float:
        """
        Move forward by ``delta_ms`` of wall time (scaled by rate) and tick.

        A paused clock does not move.

        Returns:
            Current time after the step
        """
        if not self._running:
            return self._time
        self._time += delta_ms * self._rate
        self._fire(self._time)
        return self._time

    def tick(self, time_ms: float):
        """Jump to ``time_ms`` and tick, as a running clock would report it."""
        if not self._running:
            return
        self._time = float(time_ms)
        self._fire(self._time)

    def run(self, step_ms: float, max_ticks: Optional[int] = None) -> int:
        """
        Advance in ``step_ms`` increments until the clock is paused.

        Returns:
            Number of ticks delivered
        """
        ticks = 0
        while self._running:
            if max_ticks is not None and ticks >= max_ticks:
                break
            self.advance(step_ms)
            ticks += 1
        return ticks
