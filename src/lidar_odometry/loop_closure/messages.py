"""Job data handed from the scheduler to loop-closure verification tasks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..frontend.observation import PointCloud
    from ..frontend.pose import SE3


@dataclass(frozen=True)
class VerificationJob:
    """A pair of window keyframes to align off the critical path.

    Everything the task needs is captured at dispatch time, so the task
    never reads the window while the primary worker keeps mutating it.

    Attributes:
        from_id: Root keyframe ID at dispatch time
        to_id: Candidate keyframe ID
        from_cloud: Point cloud of from_id
        to_cloud: Point cloud of to_id
        initial_guess: Pose of to_id relative to from_id in the window
    """

    from_id: int
    to_id: int
    from_cloud: PointCloud
    to_cloud: PointCloud
    initial_guess: SE3
