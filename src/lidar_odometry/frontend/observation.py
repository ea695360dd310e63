"""Sensor observations and the point clouds derived from them."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np


@dataclass(frozen=True)
class Observation:
    """A single raw sensor reading.

    Attributes:
        sensor_label: Name of the sensor that produced the reading
        timestamp_ns: Acquisition time in nanoseconds
        payload: Opaque sensor data, interpreted by the cloud builder
    """

    sensor_label: str
    timestamp_ns: int
    payload: Any = None


@dataclass
class PointCloud:
    """Geometric samples in the sensor frame."""

    points: np.ndarray  # (N, 3)

    def __post_init__(self) -> None:
        self.points = np.asarray(self.points, dtype=np.float64)
        if self.points.ndim != 2 or self.points.shape[1] != 3:
            raise ValueError(f"Points must be Nx3, got {self.points.shape}")

    def __len__(self) -> int:
        return self.points.shape[0]

    @property
    def is_empty(self) -> bool:
        return len(self) == 0


def points_from_observation(obs: Observation) -> PointCloud | None:
    """Default cloud builder.

    Accepts a PointCloud, an (N, >=3) array (extra columns such as
    intensity are dropped) or any object exposing a ``points`` array.

    Returns:
        PointCloud, or None if the payload cannot be converted or is empty
    """
    payload = obs.payload
    if isinstance(payload, PointCloud):
        cloud = payload
    else:
        data = getattr(payload, "points", payload)
        if not isinstance(data, np.ndarray):
            return None
        if data.ndim != 2 or data.shape[1] < 3:
            return None
        cloud = PointCloud(points=data[:, :3])

    if cloud.is_empty:
        return None
    return cloud
