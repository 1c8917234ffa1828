from __future__ import annotations
from typing import List, Literal, Optional
from pydantic import BaseModel, Field

from formcoach.counter.pose_core import PoseFrame


class LandmarkIn(BaseModel):
    x: float
    y: float
    z: Optional[float] = None
    visibility: Optional[float] = Field(None, description="Estimator confidence; carried, not used for counting")


class FrameMessage(BaseModel):
    """One pose-estimator result as sent by a browser client or stored in a replay file."""
    type: Literal["frame"] = "frame"
    landmarks: List[Optional[LandmarkIn]] = Field(..., description="Up to 33 landmarks; null for a joint not reported")
    ts: Optional[float] = Field(None, description="Capture time in seconds")
    draw: bool = Field(False, description="Reply with the skeleton overlay for this frame")

    def to_frame(self) -> PoseFrame:
        return PoseFrame.from_landmarks(self.landmarks, ts=self.ts)
