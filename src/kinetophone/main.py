#!/usr/bin/env python3
"""
kinetophone: timeline cue engine

Plays a TOML cue sheet on a virtual clock and logs every enter/exit
transition, or answers point/range queries against it.

Usage:
    # Play in real time
    kinetophone cues.toml

    # Play at double speed with a status endpoint
    kinetophone cues.toml --rate 2 --status-port 8080

    # Simulate without sleeping, 10 ms per tick
    kinetophone cues.toml --simulate --step 10

    # Queries
    kinetophone cues.toml --at 1500
    kinetophone cues.toml --between 0 5000 --channel captions
"""

import argparse
import json
import logging
import math
import signal
import sys
import threading
from typing import Any, Dict, List, Optional

# Set up logging before imports that use it
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger('kinetophone')

from .config import load_config, load_cue_sheet
from .engine.clock import Clock, ManualClock, WallClock
from .engine.kinetophone import Kinetophone
from .errors import KinetophoneError


def build_engine(
    channels: List[Dict[str, Any]],
    total_duration: float,
    config: Dict[str, Any],
    clock: Clock
) -> Kinetophone:
    """Create an engine from cue sheet contents and the [playback] config."""
    playback = config.get('playback', {})
    engine = Kinetophone(
        channels,
        total_duration,
        time_update_resolution=playback.get('time_update_resolution'),
        tick_immediately=playback.get('tick_immediately', False),
        clock=clock
    )
    engine.playback_rate = playback.get('rate', 1.0)
    return engine


def attach_event_logging(engine: Kinetophone):
    """Log every transition and lifecycle event."""
    events_logger = logging.getLogger('kinetophone.events')

    def describe(timing: Dict[str, Any]) -> str:
        fields = ', '.join(f"{k}={v!r}" for k, v in timing.items() if k != 'name')
        return f"[{timing['name']}] {fields}"

    engine.on('enter', lambda timing: events_logger.info(f"ENTER {describe(timing)}"))
    engine.on('exit', lambda timing: events_logger.info(f"EXIT  {describe(timing)}"))
    engine.on('timeupdate', lambda t: events_logger.debug(f"timeupdate {t:.1f}"))
    engine.on('end', lambda: events_logger.info("END"))


def run_simulation(engine: Kinetophone, clock: ManualClock, step: float) -> int:
    """Play to the end of the timeline on a manual clock. Returns tick count."""
    clock.flush()
    engine.play()
    # Resolve the starting point before the first step
    clock.tick(clock.current_time)
    # Bound the loop in case a listener keeps seeking backwards
    max_ticks = int(math.ceil((engine.total_duration + 1) / (step * max(clock.get_rate(), 1e-9)))) * 4 + 16
    ticks = clock.run(step, max_ticks=max_ticks)
    if engine.playing:
        logger.warning(f"Simulation stopped after {ticks} ticks before reaching the end")
        engine.pause()
    return ticks


def run_realtime(engine: Kinetophone):
    """Play in real time until the end of the timeline or a signal."""
    done = threading.Event()
    engine.on('end', done.set)

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}")
        done.set()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    engine.play()
    try:
        while not done.wait(0.5):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        engine.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='kinetophone: timeline cue engine',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    kinetophone cues.toml
    kinetophone cues.toml --rate 2 --status-port 8080
    kinetophone cues.toml --simulate --step 10
    kinetophone cues.toml --at 1500
        """
    )

    parser.add_argument('cues', help='Path to TOML cue sheet')
    parser.add_argument(
        '--config', '-c',
        help='Path to TOML configuration file'
    )
    parser.add_argument(
        '--rate', '-r',
        type=float,
        help='Playback rate (overrides config)'
    )
    parser.add_argument(
        '--resolution',
        type=float,
        help='Minimum time between timeupdate batches (overrides config)'
    )
    parser.add_argument(
        '--simulate',
        action='store_true',
        help='Drive a manual clock instead of real time'
    )
    parser.add_argument(
        '--step',
        type=float,
        default=10.0,
        help='Manual clock step per tick in simulation mode (default: 10)'
    )
    parser.add_argument(
        '--at',
        type=float,
        help='Print timings active at this time as JSON and exit'
    )
    parser.add_argument(
        '--between',
        type=float,
        nargs=2,
        metavar=('START', 'END'),
        help='Print timings overlapping [START, END) as JSON and exit'
    )
    parser.add_argument(
        '--channel',
        action='append',
        help='Restrict queries to this channel (repeatable)'
    )
    parser.add_argument(
        '--status-port',
        type=int,
        help='HTTP port for status endpoint (0 to disable)'
    )
    parser.add_argument(
        '--debug',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config)
        channels, total_duration = load_cue_sheet(args.cues)
    except KinetophoneError as e:
        logger.error(str(e))
        return 1

    # Apply command-line overrides
    playback = config.setdefault('playback', {})
    if args.rate is not None:
        playback['rate'] = args.rate
    if args.resolution is not None:
        playback['time_update_resolution'] = args.resolution
    if args.status_port is not None:
        config.setdefault('output', {})['status_port'] = args.status_port

    if args.simulate or args.at is not None or args.between:
        clock = ManualClock()
    else:
        clock = WallClock(interval=playback.get('tick_interval', 0.01))

    try:
        engine = build_engine(channels, total_duration, config, clock)
    except KinetophoneError as e:
        logger.error(f"Invalid cue sheet {args.cues}: {e}")
        return 1

    try:
        if args.at is not None:
            print(json.dumps(engine.get_timings_at(args.at, args.channel), indent=2, default=str))
            return 0
        if args.between:
            start, end = args.between
            print(json.dumps(engine.get_timings_between(start, end, args.channel), indent=2, default=str))
            return 0
    except KinetophoneError as e:
        logger.error(str(e))
        return 1

    attach_event_logging(engine)

    status_server = None
    output = config.get('output', {})
    status_port = output.get('status_port', 0)
    if status_port > 0:
        from .output import StatusServer
        status_server = StatusServer(
            port=status_port,
            bind_address=output.get('status_bind_address', '127.0.0.1')
        )
        status_server.set_engine(engine)
        status_server.start()

    try:
        if isinstance(clock, ManualClock):
            ticks = run_simulation(engine, clock, args.step)
            logger.info(f"Simulation complete: {ticks} ticks, stats={engine.stats}")
        else:
            run_realtime(engine)
    finally:
        if status_server:
            status_server.stop()

    return 0


if __name__ == '__main__':
    sys.exit(main())
