from __future__ import annotations
import pytest

from formcoach.common.errors import UnknownExerciseError
from formcoach.counter.exercises import (
    EXERCISES,
    Flag,
    FormGate,
    catalog,
    elbow_min,
    get_exercise,
    hip_max,
    knee_max,
    knee_min,
    shoulder_abduction_max,
    torso_angle,
    wrist_below_shoulder,
)

IDS = [
    "bicep_curl", "squats", "pushups", "lunges", "overhead_press",
    "lateral_raises", "pullups", "glute_bridges", "crunches", "plank",
]


def test_catalog_has_ten_exercises_in_order():
    assert [c["id"] for c in catalog()] == IDS
    assert set(EXERCISES) == set(IDS)


def test_only_plank_is_isometric():
    assert [d.id for d in EXERCISES.values() if d.is_isometric] == ["plank"]


def test_unknown_exercise():
    with pytest.raises(UnknownExerciseError) as ei:
        get_exercise("burpees")
    assert isinstance(ei.value, KeyError)
    assert "burpees" in str(ei.value)


@pytest.mark.parametrize("exercise_id,cooldown", [
    ("bicep_curl", 350), ("squats", 450), ("pushups", 450), ("lunges", 500),
    ("overhead_press", 350), ("lateral_raises", 500), ("pullups", 600),
    ("glute_bridges", 500), ("crunches", 400),
])
def test_cooldowns(exercise_id, cooldown):
    assert get_exercise(exercise_id).cooldown_ms == cooldown


def test_curl_direction():
    d = get_exercise("bicep_curl")
    assert d.entered(151) and not d.entered(150)
    assert d.committed(49) and not d.committed(50)
    assert d.entry_flag is Flag.EXTENSION
    assert d.commit_flag is Flag.DEPTH


def test_press_direction_is_inverted():
    d = get_exercise("overhead_press")
    assert d.entered(100) and not d.entered(120)
    assert d.committed(141) and not d.committed(140)
    assert d.commit_flag is Flag.EXTENSION


def test_crunch_enters_high_but_checks_extension_on_commit():
    d = get_exercise("crunches")
    assert d.entered(116)
    assert d.committed(109)
    assert d.entry_flag is Flag.DEPTH
    assert d.commit_flag is Flag.EXTENSION


def test_implicit_entry_quality():
    assert get_exercise("squats").entry_quality_met(161)


def test_form_gate_bounds_are_inclusive():
    gate = FormGate(lambda f: f, "msg", low=155, high=205)
    assert gate.holds(155) and gate.holds(205)
    assert not gate.holds(154.9)
    open_top = FormGate(lambda f: f, "msg", low=140)
    assert open_top.holds(500)


def test_hold_band_is_exclusive():
    d = get_exercise("plank")
    assert d.in_hold_band(170)
    assert not d.in_hold_band(155)


def test_metrics_read_built_poses(poses):
    assert elbow_min(poses.frame(poses.arms(elbow=60))) == pytest.approx(60, abs=1e-6)
    assert shoulder_abduction_max(poses.frame(poses.arms(shoulder=80))) == pytest.approx(80, abs=1e-6)
    assert knee_min(poses.frame(poses.legs(100, 150))) == pytest.approx(100, abs=1e-6)
    assert knee_max(poses.frame(poses.legs(100, 150))) == pytest.approx(150, abs=1e-6)
    assert hip_max(poses.frame(poses.hips(130))) == pytest.approx(130, abs=1e-6)
    assert torso_angle(poses.frame(poses.torso(170))) == pytest.approx(170, abs=1e-6)


def test_wrist_below_shoulder_sign(poses):
    assert wrist_below_shoulder(poses.frame(poses.pull(0.5))) > 0
    assert wrist_below_shoulder(poses.frame(poses.pull(0.2))) == pytest.approx(-0.1)
