from __future__ import annotations
import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

Point = Tuple[float, float]

ORIGIN: Point = (0.0, 0.0)


class PoseLandmark(IntEnum):
    """33-joint skeleton topology emitted by the pose estimator."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


NUM_LANDMARKS = len(PoseLandmark)

# Skeleton edges for the overlay
POSE_CONNECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 1), (1, 2), (2, 3), (3, 7), (0, 4), (4, 5), (5, 6), (6, 8), (9, 10),
    (11, 12), (11, 13), (13, 15), (15, 17), (15, 19), (15, 21), (17, 19),
    (12, 14), (14, 16), (16, 18), (16, 20), (16, 22), (18, 20),
    (11, 23), (12, 24), (23, 24), (23, 25), (24, 26), (25, 27), (26, 28),
    (27, 29), (28, 30), (29, 31), (30, 32), (27, 31), (28, 32),
)


# Utility math

def angle_3pt(a: Point, b: Point, c: Point) -> float:
    """Return angle ABC in degrees with B as vertex, folded into [0, 180]."""
    try:
        ang = math.degrees(
            math.atan2(c[1] - b[1], c[0] - b[0]) - math.atan2(a[1] - b[1], a[0] - b[0])
        )
        ang = abs(ang)
        if ang > 180:
            ang = 360 - ang
        return ang
    except (TypeError, ValueError, IndexError):
        return 0.0


@dataclass
class PoseFrame:
    """
    One instant of landmarks in normalized frame coordinates.

    `points` is an (N, 2) float array; a missing landmark is a NaN row.
    `visibility` is carried along for the caller but the counters never read it.
    """
    points: np.ndarray
    visibility: Optional[np.ndarray] = None
    ts: Optional[float] = None

    def __len__(self) -> int:
        return int(self.points.shape[0])

    @classmethod
    def from_landmarks(cls, landmarks: Sequence[Any], ts: Optional[float] = None) -> "PoseFrame":
        """
        Build a frame from whatever the pose source hands us: dicts with x/y,
        (x, y[, visibility]) tuples, objects with .x/.y attributes (e.g. the
        estimator's landmark protos) or None for a joint it did not report.
        """
        n = len(landmarks)
        pts = np.full((n, 2), np.nan, dtype=float)
        vis = np.full((n,), np.nan, dtype=float)
        for i, lm in enumerate(landmarks):
            x, y, v = _unpack(lm)
            if x is None or y is None:
                continue
            pts[i] = (x, y)
            if v is not None:
                vis[i] = v
        return cls(points=pts, visibility=vis, ts=ts)

    @classmethod
    def from_points(cls, points: dict, ts: Optional[float] = None) -> "PoseFrame":
        """Frame of NUM_LANDMARKS joints where only `points` ({index: (x, y)}) are known."""
        rows: List[Any] = [None] * NUM_LANDMARKS
        for idx, p in points.items():
            rows[int(idx)] = p
        return cls.from_landmarks(rows, ts=ts)


def _unpack(lm: Any) -> Tuple[Optional[float], Optional[float], Optional[float]]:
    if lm is None:
        return None, None, None
    if isinstance(lm, dict):
        return lm.get("x"), lm.get("y"), lm.get("visibility")
    if isinstance(lm, (tuple, list)):
        if len(lm) < 2:
            return None, None, None
        return lm[0], lm[1], (lm[2] if len(lm) > 2 else None)
    return getattr(lm, "x", None), getattr(lm, "y", None), getattr(lm, "visibility", None)


def land(frame: PoseFrame, idx: int) -> Point:
    """Coordinate of joint `idx`, or the origin when it is out of range or missing."""
    if idx < 0 or idx >= len(frame):
        return ORIGIN
    x, y = frame.points[idx]
    if not (np.isfinite(x) and np.isfinite(y)):
        return ORIGIN
    return float(x), float(y)


def joint_angle(frame: PoseFrame, a: int, b: int, c: int) -> float:
    return angle_3pt(land(frame, a), land(frame, b), land(frame, c))


@dataclass
class DrawRequest:
    landmarks: List[Point]
    connections: Tuple[Tuple[int, int], ...] = POSE_CONNECTIONS

    def to_dict(self) -> dict:
        return {
            "landmarks": [list(p) for p in self.landmarks],
            "connections": [list(c) for c in self.connections],
        }


def draw_request(frame: PoseFrame) -> DrawRequest:
    return DrawRequest(landmarks=[land(frame, i) for i in range(len(frame))])
