"""Processing state and keyframe selection logic.

A keyframe is an observation committed to the backend as a permanent
pose anchor. Not every scan becomes one: motion is accumulated since the
last keyframe and a new one is created only when the accumulated
translation is large enough and the latest registration is trustworthy.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..backend.interfaces import INVALID_ID
from .observation import Observation, PointCloud
from .pose import SE3, Twist


@dataclass
class ProcessingState:
    """Mutable per-instance state of the odometry pipeline.

    Only the primary worker mutates it, one observation at a time.
    """

    last_obs: Observation | None = None
    last_obs_timestamp_ns: int | None = None
    last_points: PointCloud | None = None
    accum_since_last_kf: SE3 = field(default_factory=SE3.identity)
    last_kf: int = INVALID_ID
    twist: Twist = field(default_factory=Twist)

    @property
    def has_previous_cloud(self) -> bool:
        """False while awaiting the first observation."""
        return self.last_points is not None

    @property
    def has_keyframe(self) -> bool:
        return self.last_kf != INVALID_ID


class KeyframeDecision:
    """Decides when accumulated motion justifies a new keyframe.

    Rotation is not gated: only the translational distance since the last
    keyframe is compared against the threshold.
    """

    def __init__(
        self,
        min_dist_xyz_between_keyframes: float,
        min_icp_goodness: float,
    ) -> None:
        """Initialize keyframe decision.

        Args:
            min_dist_xyz_between_keyframes: Minimum translation (m) since the
                last keyframe to trigger a new one
            min_icp_goodness: Registration goodness the triggering scan must
                exceed
        """
        self._min_dist = min_dist_xyz_between_keyframes
        self._min_goodness = min_icp_goodness

    @staticmethod
    def accumulate(state: ProcessingState, relative_pose: SE3) -> float:
        """Compose relative_pose onto the accumulator.

        Returns:
            Translational distance since the last keyframe
        """
        state.accum_since_last_kf = state.accum_since_last_kf.compose(relative_pose)
        return state.accum_since_last_kf.norm()

    def should_create(self, goodness: float, accum_since_last_kf: SE3) -> bool:
        """Return True if a keyframe must be committed for this scan."""
        return (
            goodness > self._min_goodness
            and accum_since_last_kf.norm() > self._min_dist
        )

    @staticmethod
    def on_keyframe_committed(state: ProcessingState, kf_id: int) -> None:
        """Reset the accumulator and record the new keyframe."""
        state.accum_since_last_kf = SE3.identity()
        state.last_kf = kf_id
