"""Front-end configuration.

Parameters can be built programmatically or loaded from YAML. A YAML
document may hold the parameters at its top level or wrapped in a
``params:`` block:

    params:
      min_dist_xyz_between_keyframes: 1.0
      min_time_between_scans: 0.2
      min_icp_goodness: 0.4
      decimate_to_point_count: 500
      max_local_window_size: 50
      icp:
        max_iterations: 50
        threshold_dist: 1.25
        threshold_ang_deg: 1.0
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

import numpy as np
import yaml

from .errors import ConfigError


@dataclass
class ICPParams:
    """Parameters forwarded to the registration oracle."""

    max_iterations: int = 50
    threshold_dist: float = 1.25  # Max correspondence distance (m)
    threshold_ang: float = float(np.deg2rad(1.0))  # Convergence step (rad)
    skip_cov_calculation: bool = False
    # Set per call by the registration adapter
    corresponding_points_decimation: int = 1

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ICPParams:
        data = dict(data)
        kwargs: dict[str, Any] = {}
        if "threshold_ang_deg" in data:
            kwargs["threshold_ang"] = float(np.deg2rad(data.pop("threshold_ang_deg")))
        for key in ("max_iterations", "threshold_dist", "threshold_ang", "skip_cov_calculation"):
            if key in data:
                kwargs[key] = data.pop(key)
        if data:
            raise ConfigError(f"Unknown icp parameters: {sorted(data)}")
        return replace(cls(), **kwargs)


@dataclass
class LidarOdometryConfig:
    """Configuration for the LiDAR odometry front-end."""

    min_dist_xyz_between_keyframes: float = 1.0  # meters
    min_time_between_scans: float = 0.2  # seconds
    min_icp_goodness: float = 0.4  # [0, 1]
    decimate_to_point_count: int = 500  # 0 disables decimation
    max_local_window_size: int = 50  # keyframes
    raw_sensor_label: str | None = None  # None accepts every sensor
    icp: ICPParams = field(default_factory=ICPParams)

    def validate(self) -> None:
        """Check parameter ranges.

        Raises:
            ConfigError: If any parameter is out of range
        """
        if self.min_dist_xyz_between_keyframes < 0:
            raise ConfigError("min_dist_xyz_between_keyframes must be >= 0")
        if self.min_time_between_scans < 0:
            raise ConfigError("min_time_between_scans must be >= 0")
        if not 0.0 <= self.min_icp_goodness <= 1.0:
            raise ConfigError("min_icp_goodness must be in [0, 1]")
        if self.decimate_to_point_count < 0:
            raise ConfigError("decimate_to_point_count must be >= 0")
        if self.max_local_window_size < 2:
            raise ConfigError("max_local_window_size must be >= 2")
        if self.icp.max_iterations < 1:
            raise ConfigError("icp.max_iterations must be >= 1")
        if self.icp.threshold_dist <= 0:
            raise ConfigError("icp.threshold_dist must be > 0")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LidarOdometryConfig:
        """Build a validated config from a parameter mapping.

        Raises:
            ConfigError: On unknown or missing keys, or invalid values
        """
        if "params" in data:
            data = data["params"]
        if not isinstance(data, dict):
            raise ConfigError("Configuration must be a mapping")

        data = dict(data)
        if "min_dist_xyz_between_keyframes" not in data:
            raise ConfigError("Missing required parameter: min_dist_xyz_between_keyframes")

        icp = ICPParams.from_dict(data.pop("icp", None) or {})
        known = {f.name for f in fields(cls)} - {"icp"}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown parameters: {sorted(unknown)}")

        try:
            config = cls(icp=icp, **data)
        except TypeError as e:
            raise ConfigError(str(e)) from e
        config.validate()
        return config

    @classmethod
    def from_yaml(cls, text: str) -> LidarOdometryConfig:
        """Parse a YAML document."""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e
        return cls.from_dict(data or {})

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> LidarOdometryConfig:
        """Load a YAML file.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ConfigError: If the content is invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        return cls.from_yaml(path.read_text())
