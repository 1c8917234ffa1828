from __future__ import annotations
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Tuple, Union

from formcoach.counter.exercises import ExerciseDefinition, Flag
from formcoach.counter.pose_core import PoseFrame

log = logging.getLogger(__name__)

GOOD_FORM = "Good form!"
FULL_RANGE = "Complete the full range of motion."


class Stage(str, Enum):
    READY = "ready"
    EXTENDED = "extended"
    CONTRACTED = "contracted"


@dataclass
class RepValidation:
    is_correct_depth: bool = False
    is_correct_extension: bool = False
    is_form_correct: bool = True
    feedback: List[str] = field(default_factory=list)

    def mark(self, flag: Flag):
        if flag is Flag.DEPTH:
            self.is_correct_depth = True
        else:
            self.is_correct_extension = True

    def is_marked(self, flag: Flag) -> bool:
        return self.is_correct_depth if flag is Flag.DEPTH else self.is_correct_extension

    @property
    def is_good(self) -> bool:
        return self.is_correct_depth and self.is_correct_extension and self.is_form_correct

    def copy(self) -> "RepValidation":
        return RepValidation(self.is_correct_depth, self.is_correct_extension,
                             self.is_form_correct, list(self.feedback))


@dataclass
class ExerciseSession:
    exercise_id: str
    stage: Stage = Stage.READY
    reps: int = 0
    good_reps: int = 0
    current_rep_validation: RepValidation = field(default_factory=RepValidation)
    last_rep_feedback: List[str] = field(default_factory=list)
    timer_seconds: int = 0
    timer_running: bool = False
    last_rep_committed_at_ms: Optional[float] = None

    def copy(self) -> "ExerciseSession":
        return ExerciseSession(
            exercise_id=self.exercise_id,
            stage=self.stage,
            reps=self.reps,
            good_reps=self.good_reps,
            current_rep_validation=self.current_rep_validation.copy(),
            last_rep_feedback=list(self.last_rep_feedback),
            timer_seconds=self.timer_seconds,
            timer_running=self.timer_running,
            last_rep_committed_at_ms=self.last_rep_committed_at_ms,
        )

    def to_dict(self) -> dict:
        v = self.current_rep_validation
        return {
            "exercise": self.exercise_id,
            "stage": self.stage.value,
            "reps": self.reps,
            "good_reps": self.good_reps,
            "current_rep": {
                "depth_ok": v.is_correct_depth,
                "extension_ok": v.is_correct_extension,
                "form_ok": v.is_form_correct,
                "feedback": list(v.feedback),
            },
            "feedback": list(self.last_rep_feedback),
            "timer_seconds": self.timer_seconds,
            "timer_running": self.timer_running,
        }


def commit_rep(nxt: ExerciseSession, d: ExerciseDefinition, now_ms: float) -> Optional[dict]:
    """
    Count the rep that `nxt` just completed unless the previous one was committed
    within the exercise's cooldown. Mutates `nxt`; returns the rep metrics or None
    when the commit was suppressed.
    """
    last = nxt.last_rep_committed_at_ms
    if last is not None and now_ms - last <= d.cooldown_ms:
        log.debug("%s: rep suppressed, %.0f ms since last (cooldown %d ms)", d.id, now_ms - last, d.cooldown_ms)
        return None

    v = nxt.current_rep_validation
    nxt.reps += 1
    if v.is_good:
        nxt.good_reps += 1
        nxt.last_rep_feedback = [GOOD_FORM]
    else:
        nxt.last_rep_feedback = list(v.feedback) or [FULL_RANGE]

    out = {
        "rep_index": nxt.reps,
        "good": v.is_good,
        "good_reps": nxt.good_reps,
        "depth_ok": v.is_correct_depth,
        "extension_ok": v.is_correct_extension,
        "form_ok": v.is_form_correct,
        "feedback": list(nxt.last_rep_feedback),
        "ts_ms": now_ms,
    }
    nxt.current_rep_validation = RepValidation()
    nxt.last_rep_committed_at_ms = now_ms
    return out


class StageMachine:
    """
    Two-threshold (hysteresis) rep counter driven by one ExerciseDefinition.
    Holds no session state of its own; every step maps (frame, session) to a new session.
    """
    def __init__(self, definition: ExerciseDefinition, debug_cb: Optional[Callable[[str], None]] = None):
        self.definition = definition
        self._dbg = debug_cb or (lambda *_: None)

    def step(self, frame: PoseFrame, session: ExerciseSession, now_ms: float) -> Tuple[ExerciseSession, Optional[dict]]:
        d = self.definition
        nxt = session.copy()
        v = nxt.current_rep_validation

        if d.form_gate is not None:
            if d.form_gate.holds(frame):
                v.is_form_correct = True
            else:
                v.is_form_correct = False
                nxt.last_rep_feedback = [d.form_gate.message]

        m = d.metric(frame)
        prev = session.stage

        if prev is not Stage.EXTENDED and d.entered(m):
            nxt.stage = Stage.EXTENDED
            if d.entry_quality_met(m):
                v.mark(d.entry_flag)
            elif not v.is_marked(d.entry_flag):
                v.feedback = [d.entry_hint]
            self._dbg(f"stage→{Stage.EXTENDED.value} ({m:.1f})")

        rep = None
        if prev is Stage.EXTENDED and d.committed(m):
            nxt.stage = Stage.CONTRACTED
            if d.commit_quality_met(frame, m):
                v.mark(d.commit_flag)
            elif not v.is_marked(d.commit_flag):
                v.feedback = [d.commit_hint]
            self._dbg(f"stage→{Stage.CONTRACTED.value} ({m:.1f})")
            rep = commit_rep(nxt, d, now_ms)

        return nxt, rep

    def tick(self, session: ExerciseSession) -> ExerciseSession:
        return session


class HoldTimer:
    """Isometric variant: no reps, the 1 Hz tick accumulates time while the pose is in band."""
    def __init__(self, definition: ExerciseDefinition, debug_cb: Optional[Callable[[str], None]] = None):
        self.definition = definition
        self._dbg = debug_cb or (lambda *_: None)

    def step(self, frame: PoseFrame, session: ExerciseSession, now_ms: float) -> Tuple[ExerciseSession, Optional[dict]]:
        d = self.definition
        nxt = session.copy()
        running = d.in_hold_band(d.metric(frame))
        if running != session.timer_running:
            self._dbg("hold→on" if running else "hold→off")
        nxt.timer_running = running
        nxt.last_rep_feedback = [d.hold_message if running else d.break_message]
        return nxt, None

    def tick(self, session: ExerciseSession) -> ExerciseSession:
        if not session.timer_running:
            return session
        nxt = session.copy()
        nxt.timer_seconds += 1
        return nxt


Counter = Union[StageMachine, HoldTimer]


def build_counter(definition: ExerciseDefinition, debug_cb: Optional[Callable[[str], None]] = None) -> Counter:
    if definition.is_isometric:
        return HoldTimer(definition, debug_cb=debug_cb)
    return StageMachine(definition, debug_cb=debug_cb)
