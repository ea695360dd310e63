"""Exception types raised by the LiDAR odometry front-end."""


class LidarOdometryError(Exception):
    """Base class for all front-end errors."""


class ConfigError(LidarOdometryError):
    """Invalid or incomplete configuration."""


class NotInitializedError(LidarOdometryError):
    """Front-end used before initialize() or after shutdown()."""


class BackendContractError(LidarOdometryError):
    """The backend reported failure or returned an invalid id.

    Fatal to the task that issued the request: the shared keyframe store
    is no longer consistent with what this task expects.
    """


class RegistrationError(LidarOdometryError):
    """The registration oracle returned a malformed result."""


class WorkerPoolError(LidarOdometryError):
    """Task submitted to a pool that is not running."""
