# formcoach/runtime/cli.py
from __future__ import annotations
import argparse
import json
import sys
from typing import Iterable, Iterator, List, Optional

from pydantic import ValidationError

from formcoach.common import config
from formcoach.common.errors import FormcoachError
from formcoach.common.events import EventType, SessionEvent
from formcoach.common.schemas import FrameMessage
from formcoach.counter.exercises import EXERCISES
from formcoach.counter.session import RepSessionManager, WorkoutSummary


class ReplayClock:
    """Clock that follows the timestamps of the recording instead of wall time."""
    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t


def read_frames(lines: Iterable[str]) -> Iterator[FrameMessage]:
    for n, line in enumerate(lines, 1):
        line = line.strip()
        if not line:
            continue
        try:
            yield FrameMessage.model_validate_json(line)
        except ValidationError as e:
            print(f"line {n}: skipped ({e.error_count()} error(s))", file=sys.stderr, flush=True)


def replay(exercise: str, frames: Iterable[FrameMessage], countdown: Optional[int] = None,
           fps: float = 30.0, verbose: bool = True) -> WorkoutSummary:
    """
    Run recorded frames through a fresh session. One tick is dispatched per
    elapsed second of recording time; frames without `ts` are spaced 1/fps apart.
    """
    clock = ReplayClock()
    mgr = RepSessionManager(countdown_seconds=countdown, clock=clock)

    def _print(ev: dict):
        if ev.get("type") == EventType.REP.value:
            mark = "✓" if ev["good"] else "✗"
            print(f"rep {ev['rep_index']} {mark}  {' '.join(ev['feedback'])}", flush=True)
        elif ev.get("type") == EventType.PHASE.value:
            print(f"[{ev['phase']}]" + (f" {ev['countdown']}" if ev.get("countdown") else ""), flush=True)

    if verbose:
        mgr.set_event_sink(_print)

    mgr.dispatch(SessionEvent(EventType.SELECT, exercise=exercise))
    mgr.dispatch(SessionEvent(EventType.START))

    t0: Optional[float] = None
    next_tick = 1.0
    for i, msg in enumerate(frames):
        ts = msg.ts if msg.ts is not None else i / fps
        if t0 is None:
            t0 = ts
        clock.t = ts - t0
        while clock.t >= next_tick:
            mgr.dispatch(SessionEvent(EventType.TICK))
            next_tick += 1.0
        mgr.dispatch(SessionEvent(EventType.FRAME, frame=msg.to_frame()))

    return mgr.dispatch(SessionEvent(EventType.END))


def main(argv: Optional[List[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="formcoach-replay", description="Replay recorded pose landmarks through the rep counter.")
    p.add_argument("exercise", choices=sorted(EXERCISES))
    p.add_argument("frames", help="JSON-lines file of frame messages ('-' for stdin)")
    p.add_argument("--countdown", type=int, default=None,
                   help=f"countdown ticks before counting starts (default {config.COUNTDOWN_SECONDS})")
    p.add_argument("--fps", type=float, default=30.0, help="frame rate assumed for frames without ts")
    p.add_argument("-q", "--quiet", action="store_true")
    args = p.parse_args(argv)

    config.configure_logging("WARNING" if args.quiet else None)
    try:
        if args.frames == "-":
            summary = replay(args.exercise, read_frames(sys.stdin), args.countdown, args.fps, not args.quiet)
        else:
            with open(args.frames, encoding="utf-8") as fh:
                summary = replay(args.exercise, read_frames(fh), args.countdown, args.fps, not args.quiet)
    except (OSError, FormcoachError) as e:
        print("Error:", e, file=sys.stderr)
        return 1

    print(json.dumps(summary.to_dict()), flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
