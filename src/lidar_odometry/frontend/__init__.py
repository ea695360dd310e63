"""Per-scan odometry building blocks."""

from .keyframe import KeyframeDecision, ProcessingState
from .motion_model import ConstantVelocityModel, RateGate, seconds_between
from .observation import Observation, PointCloud, points_from_observation
from .pose import SE3, Twist

__all__ = [
    # Pose
    "SE3",
    "Twist",
    # Observations
    "Observation",
    "PointCloud",
    "points_from_observation",
    # Motion model
    "RateGate",
    "ConstantVelocityModel",
    "seconds_between",
    # Keyframes
    "KeyframeDecision",
    "ProcessingState",
]
