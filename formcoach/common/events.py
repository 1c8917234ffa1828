from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional


class EventType(str, Enum):
    # inbound: everything that mutates a session goes through one ordered stream
    SELECT = "select"
    START = "start"
    FRAME = "frame"
    TICK = "tick"
    END = "end"
    RESET = "reset"
    # outbound, to the event sink
    REP = "rep"
    PHASE = "phase"
    TRACE = "trace"
    STATE = "state"


@dataclass
class SessionEvent:
    type: EventType
    exercise: Optional[str] = None
    frame: Optional[Any] = None  # PoseFrame for FRAME events


@dataclass
class RepEvent:
    exercise: str
    ts: float
    rep_index: int
    good: bool
    good_reps: int
    feedback: List[str] = field(default_factory=list)
    type: EventType = EventType.REP

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "exercise": self.exercise,
            "ts": self.ts,
            "rep_index": self.rep_index,
            "good": self.good,
            "good_reps": self.good_reps,
            "feedback": list(self.feedback),
        }


@dataclass
class PhaseEvent:
    phase: str
    exercise: Optional[str]
    ts: float
    countdown: Optional[int] = None
    type: EventType = EventType.PHASE

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "phase": self.phase,
            "exercise": self.exercise,
            "ts": self.ts,
            "countdown": self.countdown,
        }
