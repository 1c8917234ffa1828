from __future__ import annotations
import math
from types import SimpleNamespace

import numpy as np
import pytest

from formcoach.counter.pose_core import (
    NUM_LANDMARKS,
    POSE_CONNECTIONS,
    PoseFrame,
    PoseLandmark,
    angle_3pt,
    draw_request,
    joint_angle,
    land,
)


def test_right_angle():
    assert angle_3pt((1, 0), (0, 0), (0, 1)) == pytest.approx(90.0)


def test_straight_line_is_180():
    assert angle_3pt((-1, 0), (0, 0), (1, 0)) == pytest.approx(180.0)


def test_reflex_side_is_folded():
    # raw direction difference is 340 degrees
    a = (math.cos(math.radians(170)), math.sin(math.radians(170)))
    c = (math.cos(math.radians(-170)), math.sin(math.radians(-170)))
    assert angle_3pt(a, (0, 0), c) == pytest.approx(20.0)


def test_order_of_outer_points_does_not_matter():
    a, b, c = (0.2, 0.1), (0.5, 0.5), (0.9, 0.4)
    assert angle_3pt(a, b, c) == pytest.approx(angle_3pt(c, b, a))


def test_coincident_points_are_finite():
    ang = angle_3pt((0.5, 0.5), (0.5, 0.5), (0.5, 0.5))
    assert math.isfinite(ang)
    assert 0.0 <= ang <= 180.0


def test_topology_indices():
    assert NUM_LANDMARKS == 33
    assert PoseLandmark.LEFT_SHOULDER == 11
    assert PoseLandmark.RIGHT_ANKLE == 28


def test_from_landmarks_accepts_mixed_inputs():
    lms = [
        {"x": 0.1, "y": 0.2, "visibility": 0.8},
        (0.3, 0.4),
        SimpleNamespace(x=0.5, y=0.6, visibility=0.1),
        None,
    ]
    f = PoseFrame.from_landmarks(lms, ts=1.5)
    assert len(f) == 4
    assert land(f, 0) == pytest.approx((0.1, 0.2))
    assert land(f, 1) == pytest.approx((0.3, 0.4))
    assert land(f, 2) == pytest.approx((0.5, 0.6))
    assert f.visibility[0] == pytest.approx(0.8)
    assert np.isnan(f.visibility[1])
    assert f.ts == 1.5


def test_missing_and_out_of_range_default_to_origin():
    f = PoseFrame.from_landmarks([None, {"x": 0.2, "y": None}])
    assert land(f, 0) == (0.0, 0.0)
    assert land(f, 1) == (0.0, 0.0)
    assert land(f, 5) == (0.0, 0.0)
    assert land(f, -1) == (0.0, 0.0)


def test_joint_angle_on_empty_frame_does_not_raise():
    f = PoseFrame.from_landmarks([])
    assert joint_angle(f, 11, 13, 15) == pytest.approx(0.0)


def test_from_points_fills_full_skeleton():
    f = PoseFrame.from_points({PoseLandmark.LEFT_ELBOW: (0.3, 0.3)})
    assert len(f) == NUM_LANDMARKS
    assert land(f, PoseLandmark.LEFT_ELBOW) == pytest.approx((0.3, 0.3))
    assert land(f, PoseLandmark.RIGHT_ELBOW) == (0.0, 0.0)


def test_draw_request_covers_every_landmark():
    f = PoseFrame.from_points({PoseLandmark.NOSE: (0.5, 0.1)})
    req = draw_request(f)
    assert len(req.landmarks) == NUM_LANDMARKS
    assert req.connections == POSE_CONNECTIONS
    d = req.to_dict()
    assert d["landmarks"][0] == pytest.approx([0.5, 0.1])
    assert [11, 13] in d["connections"]
