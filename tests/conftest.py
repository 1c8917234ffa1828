from __future__ import annotations
import math
from typing import Dict, Optional, Tuple

import pytest

from formcoach.counter.pose_core import NUM_LANDMARKS, PoseFrame, PoseLandmark as L

Pt = Tuple[float, float]

LS, RS = (0.4, 0.3), (0.6, 0.3)
LH, RH = (0.4, 0.6), (0.6, 0.6)


def bend(a: Pt, b: Pt, angle: float, length: float = 0.15) -> Pt:
    """Point C with angle ABC == angle degrees."""
    phi = math.atan2(a[1] - b[1], a[0] - b[0]) + math.radians(angle)
    return (b[0] + length * math.cos(phi), b[1] + length * math.sin(phi))


class Poses:
    """Synthetic landmark sets posed by joint angle."""

    @staticmethod
    def arms(elbow: float = 170.0, shoulder: float = 10.0) -> Dict[int, Pt]:
        pts = {L.LEFT_SHOULDER: LS, L.RIGHT_SHOULDER: RS, L.LEFT_HIP: LH, L.RIGHT_HIP: RH}
        for s, h, e_idx, w_idx in ((LS, LH, L.LEFT_ELBOW, L.LEFT_WRIST),
                                   (RS, RH, L.RIGHT_ELBOW, L.RIGHT_WRIST)):
            e = bend(h, s, shoulder)
            pts[e_idx] = e
            pts[w_idx] = bend(s, e, elbow)
        return pts

    @staticmethod
    def legs(left: float = 170.0, right: Optional[float] = None) -> Dict[int, Pt]:
        right = left if right is None else right
        pts = {L.LEFT_HIP: LH, L.RIGHT_HIP: RH}
        for h, angle, k_idx, a_idx in ((LH, left, L.LEFT_KNEE, L.LEFT_ANKLE),
                                       (RH, right, L.RIGHT_KNEE, L.RIGHT_ANKLE)):
            k = (h[0], h[1] + 0.15)
            pts[k_idx] = k
            pts[a_idx] = bend(h, k, angle)
        return pts

    @staticmethod
    def hips(angle: float) -> Dict[int, Pt]:
        pts = {L.LEFT_SHOULDER: LS, L.RIGHT_SHOULDER: RS, L.LEFT_HIP: LH, L.RIGHT_HIP: RH}
        pts[L.LEFT_KNEE] = bend(LS, LH, angle)
        pts[L.RIGHT_KNEE] = bend(RS, RH, angle)
        return pts

    @staticmethod
    def torso(angle: float) -> Dict[int, Pt]:
        return {L.RIGHT_SHOULDER: RS, L.RIGHT_HIP: RH, L.RIGHT_ANKLE: bend(RS, RH, angle)}

    @staticmethod
    def pull(wrist_y: float, shoulder_y: float = 0.3) -> Dict[int, Pt]:
        return {
            L.LEFT_SHOULDER: (0.4, shoulder_y), L.RIGHT_SHOULDER: (0.6, shoulder_y),
            L.LEFT_WRIST: (0.35, wrist_y), L.RIGHT_WRIST: (0.65, wrist_y),
        }

    @staticmethod
    def frame(*parts: Dict[int, Pt]) -> PoseFrame:
        merged: Dict[int, Pt] = {}
        for p in parts:
            merged.update(p)
        return PoseFrame.from_points(merged)

    @staticmethod
    def as_json(*parts: Dict[int, Pt]) -> list:
        merged: Dict[int, Pt] = {}
        for p in parts:
            merged.update(p)
        out = [None] * NUM_LANDMARKS
        for idx, (x, y) in merged.items():
            out[int(idx)] = {"x": x, "y": y, "visibility": 0.9}
        return out


class FakeClock:
    def __init__(self, t: float = 100.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float):
        self.t += seconds


@pytest.fixture
def poses() -> Poses:
    return Poses()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
