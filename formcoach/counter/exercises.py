from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from formcoach.common.errors import UnknownExerciseError
from formcoach.counter.pose_core import PoseFrame, PoseLandmark as L, joint_angle, land

Metric = Callable[[PoseFrame], float]


class Flag(str, Enum):
    DEPTH = "depth"
    EXTENSION = "extension"


# Metrics (degrees unless noted)

def elbow_min(f: PoseFrame) -> float:
    return min(joint_angle(f, L.LEFT_SHOULDER, L.LEFT_ELBOW, L.LEFT_WRIST),
               joint_angle(f, L.RIGHT_SHOULDER, L.RIGHT_ELBOW, L.RIGHT_WRIST))


def knee_min(f: PoseFrame) -> float:
    return min(joint_angle(f, L.LEFT_HIP, L.LEFT_KNEE, L.LEFT_ANKLE),
               joint_angle(f, L.RIGHT_HIP, L.RIGHT_KNEE, L.RIGHT_ANKLE))


def knee_max(f: PoseFrame) -> float:
    return max(joint_angle(f, L.LEFT_HIP, L.LEFT_KNEE, L.LEFT_ANKLE),
               joint_angle(f, L.RIGHT_HIP, L.RIGHT_KNEE, L.RIGHT_ANKLE))


def shoulder_abduction_max(f: PoseFrame) -> float:
    return max(joint_angle(f, L.LEFT_HIP, L.LEFT_SHOULDER, L.LEFT_ELBOW),
               joint_angle(f, L.RIGHT_HIP, L.RIGHT_SHOULDER, L.RIGHT_ELBOW))


def hip_max(f: PoseFrame) -> float:
    return max(joint_angle(f, L.LEFT_SHOULDER, L.LEFT_HIP, L.LEFT_KNEE),
               joint_angle(f, L.RIGHT_SHOULDER, L.RIGHT_HIP, L.RIGHT_KNEE))


def hip_min(f: PoseFrame) -> float:
    return min(joint_angle(f, L.LEFT_SHOULDER, L.LEFT_HIP, L.LEFT_KNEE),
               joint_angle(f, L.RIGHT_SHOULDER, L.RIGHT_HIP, L.RIGHT_KNEE))


def torso_angle(f: PoseFrame) -> float:
    """Shoulder-hip-ankle line on the right side; ~180 when the body is straight."""
    return joint_angle(f, L.RIGHT_SHOULDER, L.RIGHT_HIP, L.RIGHT_ANKLE)


def wrist_below_shoulder(f: PoseFrame) -> float:
    """Highest wrist y minus highest shoulder y (normalized units, y grows downward)."""
    wrist_y = min(land(f, L.LEFT_WRIST)[1], land(f, L.RIGHT_WRIST)[1])
    shoulder_y = min(land(f, L.LEFT_SHOULDER)[1], land(f, L.RIGHT_SHOULDER)[1])
    return wrist_y - shoulder_y


@dataclass(frozen=True)
class FormGate:
    """Per-frame posture check; holds while low <= metric <= high."""
    metric: Metric
    message: str
    low: Optional[float] = None
    high: Optional[float] = None

    def holds(self, frame: PoseFrame) -> bool:
        m = self.metric(frame)
        if self.low is not None and m < self.low:
            return False
        if self.high is not None and m > self.high:
            return False
        return True


@dataclass(frozen=True)
class ExerciseDefinition:
    """
    Declarative description of one exercise for the two-phase counter.

    A rep starts when the metric crosses `entry_threshold` (stage -> extended)
    and is committed when, coming from extended, it crosses `commit_threshold`
    (stage -> contracted). With `entry_is_low_metric` False the entry side is the
    high side (entry: m > entry, commit: m < commit); True flips every comparison,
    for exercises whose resting pose is the flexed one.
    """
    id: str
    name: str
    description: str
    metric: Metric
    entry_threshold: float = 0.0
    commit_threshold: float = 0.0
    commit_quality_threshold: float = 0.0
    entry_is_low_metric: bool = False
    entry_flag: Flag = Flag.EXTENSION
    commit_hint: str = ""
    quality_metric: Optional[Metric] = None
    entry_quality_threshold: Optional[float] = None
    entry_hint: str = ""
    form_gate: Optional[FormGate] = None
    cooldown_ms: int = 350
    # extended / contracted as shown to the user
    labels: Tuple[str, str] = ("down", "up")
    is_isometric: bool = False
    hold_band: Tuple[float, float] = (0.0, 0.0)
    hold_message: str = ""
    break_message: str = ""

    @property
    def commit_flag(self) -> Flag:
        return Flag.DEPTH if self.entry_flag is Flag.EXTENSION else Flag.EXTENSION

    def _past(self, m: float, threshold: float, entry_side: bool) -> bool:
        low_side = self.entry_is_low_metric == entry_side
        return m < threshold if low_side else m > threshold

    def entered(self, m: float) -> bool:
        return self._past(m, self.entry_threshold, entry_side=True)

    def entry_quality_met(self, m: float) -> bool:
        if self.entry_quality_threshold is None:
            return True
        return self._past(m, self.entry_quality_threshold, entry_side=True)

    def committed(self, m: float) -> bool:
        return self._past(m, self.commit_threshold, entry_side=False)

    def commit_quality_met(self, frame: PoseFrame, m: float) -> bool:
        q = self.quality_metric(frame) if self.quality_metric is not None else m
        return self._past(q, self.commit_quality_threshold, entry_side=False)

    def in_hold_band(self, m: float) -> bool:
        low, high = self.hold_band
        return low < m < high

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "isometric": self.is_isometric,
            "cooldown_ms": self.cooldown_ms,
            "labels": list(self.labels),
        }


_CATALOG: List[ExerciseDefinition] = [
    ExerciseDefinition(
        id="bicep_curl", name="Bicep Curls", description="Upper arm strength training",
        metric=elbow_min,
        entry_threshold=150, commit_threshold=50, commit_quality_threshold=40,
        commit_hint="Curl a little higher.", cooldown_ms=350,
        labels=("down", "up"),
    ),
    ExerciseDefinition(
        id="squats", name="Squats", description="Lower body power exercise",
        metric=knee_min,
        entry_threshold=160, commit_threshold=120, commit_quality_threshold=100,
        commit_hint="Go a bit deeper.", cooldown_ms=450,
        labels=("up", "down"),
    ),
    ExerciseDefinition(
        id="pushups", name="Push-ups", description="Chest and tricep workout",
        metric=elbow_min,
        entry_threshold=150, commit_threshold=110, commit_quality_threshold=100,
        commit_hint="Go a bit lower.", cooldown_ms=450,
        form_gate=FormGate(torso_angle, "Keep your body straight!", low=155, high=205),
        labels=("up", "down"),
    ),
    # phases follow the more bent knee, depth needs both knees bent
    ExerciseDefinition(
        id="lunges", name="Lunges", description="Leg and glute strengthening",
        metric=knee_min, quality_metric=knee_max,
        entry_threshold=150, commit_threshold=120, commit_quality_threshold=110,
        commit_hint="Lower your hips.", cooldown_ms=500,
        labels=("up", "down"),
    ),
    ExerciseDefinition(
        id="overhead_press", name="Overhead Press", description="Shoulder muscle building",
        metric=elbow_min, entry_is_low_metric=True, entry_flag=Flag.DEPTH,
        entry_threshold=110, commit_threshold=140, commit_quality_threshold=150,
        commit_hint="Extend arms fully!", cooldown_ms=350,
        labels=("down", "up"),
    ),
    ExerciseDefinition(
        id="lateral_raises", name="Lateral Raises", description="Shoulder isolation exercise",
        metric=shoulder_abduction_max, entry_is_low_metric=True, entry_flag=Flag.DEPTH,
        entry_threshold=40, commit_threshold=60, commit_quality_threshold=75,
        commit_hint="Raise a little higher.", cooldown_ms=500,
        form_gate=FormGate(elbow_min, "Keep arms straighter!", low=140),
        labels=("down", "up"),
    ),
    ExerciseDefinition(
        id="pullups", name="Pull-ups", description="Back and bicep strength",
        metric=wrist_below_shoulder,
        entry_threshold=0.0, commit_threshold=0.0, commit_quality_threshold=-0.05,
        commit_hint="Pull higher!", cooldown_ms=600,
        labels=("down", "up"),
    ),
    ExerciseDefinition(
        id="glute_bridges", name="Glute Bridges", description="Hip and glute activation",
        metric=hip_max, entry_is_low_metric=True, entry_flag=Flag.DEPTH,
        entry_threshold=140, commit_threshold=150, commit_quality_threshold=155,
        commit_hint="Extend your hips fully.", cooldown_ms=500,
        labels=("down", "up"),
    ),
    # lying flat is the rest pose, so the high hip angle opens the rep
    ExerciseDefinition(
        id="crunches", name="Crunches", description="Core strengthening",
        metric=hip_min, entry_flag=Flag.DEPTH,
        entry_threshold=115, commit_threshold=110, commit_quality_threshold=105,
        commit_hint="Crunch a little higher.", cooldown_ms=400,
        labels=("down", "up"),
    ),
    ExerciseDefinition(
        id="plank", name="Plank", description="Full core stability (Timed)",
        metric=torso_angle, is_isometric=True,
        hold_band=(155, 205),
        hold_message="Good form! Hold it.", break_message="Straighten your back!",
    ),
]

EXERCISES: Dict[str, ExerciseDefinition] = {d.id: d for d in _CATALOG}


def get_exercise(exercise_id: str) -> ExerciseDefinition:
    try:
        return EXERCISES[exercise_id]
    except KeyError:
        raise UnknownExerciseError(exercise_id) from None


def catalog() -> List[dict]:
    return [d.to_dict() for d in _CATALOG]
