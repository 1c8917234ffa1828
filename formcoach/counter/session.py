from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from formcoach.common import config
from formcoach.common.errors import SessionError
from formcoach.common.events import EventType, PhaseEvent, RepEvent, SessionEvent
from formcoach.counter.exercises import ExerciseDefinition, get_exercise
from formcoach.counter.pipeline import Counter, ExerciseSession, Stage, build_counter
from formcoach.counter.pose_core import DrawRequest, PoseFrame, draw_request

log = logging.getLogger(__name__)


class Phase(str, Enum):
    IDLE = "idle"
    COUNTDOWN = "countdown"
    ACTIVE = "active"
    FINISHED = "finished"


@dataclass
class WorkoutSummary:
    exercise_id: str
    isometric: bool
    reps: int = 0
    good_reps: int = 0
    elapsed_seconds: float = 0.0
    timer_seconds: int = 0

    @property
    def form_accuracy(self) -> float:
        return 100.0 * self.good_reps / self.reps if self.reps else 0.0

    def to_dict(self) -> dict:
        if self.isometric:
            return {"exercise": self.exercise_id, "timer_seconds": self.timer_seconds}
        return {
            "exercise": self.exercise_id,
            "reps": self.reps,
            "good_reps": self.good_reps,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
            "form_accuracy": round(self.form_accuracy, 1),
        }


@dataclass
class SessionStatus:
    phase: Phase
    exercise: Optional[str]
    countdown: Optional[int]
    label: Optional[str]
    session: Optional[ExerciseSession]

    def to_dict(self) -> dict:
        return {
            "phase": self.phase.value,
            "exercise": self.exercise,
            "countdown": self.countdown,
            "label": self.label,
            "session": self.session.to_dict() if self.session else None,
        }


class RepSessionManager:
    """
    Owns the workout session across frames. Single writer: every mutation is one
    of the methods below, or the matching SessionEvent handed to dispatch().
    """
    def __init__(self, countdown_seconds: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.countdown_seconds = config.COUNTDOWN_SECONDS if countdown_seconds is None else countdown_seconds
        self.clock = clock
        self.phase = Phase.IDLE
        self.countdown: Optional[int] = None
        self.definition: Optional[ExerciseDefinition] = None
        self.counter: Optional[Counter] = None
        self.session: Optional[ExerciseSession] = None
        self.started_at: Optional[float] = None
        self.summary: Optional[WorkoutSummary] = None
        self._event_sink: Optional[Callable[[dict], None]] = None

    def set_event_sink(self, sink: Optional[Callable[[dict], None]]):
        self._event_sink = sink

    def _emit(self, payload: dict):
        if self._event_sink is None:
            return
        try:
            self._event_sink(payload)
        except Exception:
            log.debug("event sink rejected %s event", payload.get("type"), exc_info=True)

    def _emit_debug(self, msg: str):
        log.debug(msg)
        self._emit({"type": EventType.TRACE.value, "msg": msg})

    def _emit_phase(self):
        ev = PhaseEvent(
            phase=self.phase.value,
            exercise=self.definition.id if self.definition else None,
            ts=self.clock(),
            countdown=self.countdown,
        )
        self._emit(ev.to_dict())

    def _on_rep(self, metrics: dict):
        ev = RepEvent(
            exercise=self.definition.id,
            ts=self.clock(),
            rep_index=metrics["rep_index"],
            good=metrics["good"],
            good_reps=metrics["good_reps"],
            feedback=metrics["feedback"],
        )
        log.info("%s rep %d (%s): %s", ev.exercise, ev.rep_index, "good" if ev.good else "bad", "; ".join(ev.feedback))
        self._emit(ev.to_dict())

    def _fresh_session(self):
        self.session = ExerciseSession(exercise_id=self.definition.id)

    # Lifecycle

    def select_exercise(self, exercise_id: str) -> SessionStatus:
        d = get_exercise(exercise_id)
        self.definition = d
        self.counter = build_counter(d, debug_cb=self._emit_debug)
        self._fresh_session()
        if self.phase is Phase.FINISHED:
            self.phase = Phase.IDLE
            self.summary = None
        self._emit_debug(f"exercise selected: {d.id}")
        return self.status()

    def start(self) -> SessionStatus:
        if self.definition is None:
            raise SessionError("no exercise selected")
        if self.phase in (Phase.COUNTDOWN, Phase.ACTIVE):
            return self.status()
        if self.phase is Phase.FINISHED:
            self._fresh_session()
            self.summary = None
        if self.countdown_seconds <= 0:
            self._activate()
        else:
            self.phase = Phase.COUNTDOWN
            self.countdown = self.countdown_seconds
            self._emit_phase()
        return self.status()

    def _activate(self):
        self.phase = Phase.ACTIVE
        self.countdown = None
        self.started_at = self.clock()
        log.info("workout started: %s", self.definition.id)
        self._emit_phase()

    def tick(self) -> SessionStatus:
        if self.phase is Phase.COUNTDOWN:
            self.countdown -= 1
            if self.countdown <= 0:
                self._activate()
            else:
                self._emit_phase()
        elif self.phase is Phase.ACTIVE and self.counter is not None:
            self.session = self.counter.tick(self.session)
        return self.status()

    def push_frame(self, frame: PoseFrame) -> DrawRequest:
        draw = draw_request(frame)
        if self.phase is not Phase.ACTIVE or self.counter is None:
            return draw
        now_ms = self.clock() * 1000.0
        self.session, rep = self.counter.step(frame, self.session, now_ms)
        if rep is not None:
            self._on_rep(rep)
        return draw

    def end(self) -> WorkoutSummary:
        if self.phase is Phase.FINISHED and self.summary is not None:
            return self.summary
        if self.definition is None or self.session is None:
            raise SessionError("no workout to end")
        elapsed = self.clock() - self.started_at if self.started_at is not None else 0.0
        s = self.session
        self.summary = WorkoutSummary(
            exercise_id=self.definition.id,
            isometric=self.definition.is_isometric,
            reps=s.reps,
            good_reps=s.good_reps,
            elapsed_seconds=max(0.0, elapsed),
            timer_seconds=s.timer_seconds,
        )
        self.phase = Phase.FINISHED
        self.countdown = None
        log.info("workout ended: %s", self.summary.to_dict())
        self._emit_phase()
        return self.summary

    def reset(self) -> SessionStatus:
        if self.definition is not None:
            self._fresh_session()
        self.phase = Phase.IDLE
        self.countdown = None
        self.started_at = None
        self.summary = None
        self._emit_phase()
        return self.status()

    def status(self) -> SessionStatus:
        label = None
        if self.definition is not None and self.session is not None and not self.definition.is_isometric:
            label = stage_label(self.definition, self.session.stage)
        return SessionStatus(
            phase=self.phase,
            exercise=self.definition.id if self.definition else None,
            countdown=self.countdown,
            label=label,
            session=self.session,
        )

    def snapshot(self) -> dict:
        out = self.status().to_dict()
        out["summary"] = self.summary.to_dict() if self.summary else None
        return out

    def dispatch(self, event: SessionEvent) -> Any:
        """Apply one event from the ordered input stream."""
        t = event.type
        if t is EventType.FRAME:
            return self.push_frame(event.frame)
        if t is EventType.TICK:
            return self.tick()
        if t is EventType.SELECT:
            return self.select_exercise(event.exercise)
        if t is EventType.START:
            return self.start()
        if t is EventType.END:
            return self.end()
        if t is EventType.RESET:
            return self.reset()
        raise SessionError(f"not an inbound event: {t.value}")


def stage_label(definition: ExerciseDefinition, stage: Stage) -> str:
    if stage is Stage.EXTENDED:
        return definition.labels[0]
    if stage is Stage.CONTRACTED:
        return definition.labels[1]
    return Stage.READY.value
