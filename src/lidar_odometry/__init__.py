"""Python LiDAR odometry - keyframe decimation and local loop closure."""

__version__ = "0.1.0"

# Re-export main classes for convenient imports
from .config import ICPParams, LidarOdometryConfig
from .dataset_reader import DatasetReader
from .errors import (
    BackendContractError,
    ConfigError,
    LidarOdometryError,
    NotInitializedError,
    RegistrationError,
    WorkerPoolError,
)
from .frontend import SE3, Observation, PointCloud, Twist
from .backend import InMemoryBackend, InMemoryWorldModel, RelativePoseFactor
from .loop_closure import CheckedPairSet, LocalWindowGraph, LoopClosureScheduler
from .registration import PointToPointICP, RegistrationAdapter, RegistrationResult
from .odometry_system import (
    FrontEndContext,
    FrontEndStats,
    LidarOdometry,
    ObservationOutcome,
)
from .worker_pool import TaskResult, WorkerPool

__all__ = [
    "__version__",
    # Front-end
    "LidarOdometry",
    "FrontEndContext",
    "FrontEndStats",
    "ObservationOutcome",
    # Configuration
    "LidarOdometryConfig",
    "ICPParams",
    # Data
    "Observation",
    "PointCloud",
    "SE3",
    "Twist",
    "DatasetReader",
    # Registration
    "RegistrationAdapter",
    "RegistrationResult",
    "PointToPointICP",
    # Collaborators
    "InMemoryBackend",
    "InMemoryWorldModel",
    "RelativePoseFactor",
    # Loop closure
    "LocalWindowGraph",
    "LoopClosureScheduler",
    "CheckedPairSet",
    # Workers
    "WorkerPool",
    "TaskResult",
    # Errors
    "LidarOdometryError",
    "ConfigError",
    "NotInitializedError",
    "BackendContractError",
    "RegistrationError",
    "WorkerPoolError",
]
