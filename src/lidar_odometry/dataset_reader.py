"""KITTI odometry dataset reader for LiDAR scans."""

from pathlib import Path
from typing import Iterator

import numpy as np

from .frontend.observation import Observation

NS_PER_SECOND = 1_000_000_000


class DatasetReader:
    """Reader for KITTI odometry Velodyne sequences.

    Expected structure:
        <sequence>/times.txt        one timestamp (seconds) per line
        <sequence>/velodyne/NNNNNN.bin  float32 records (x, y, z, intensity)
    """

    def __init__(
        self,
        sequence_path: str = "data/kitti/sequences/00",
        sensor_label: str = "lidar",
    ) -> None:
        """Initialize reader with path to a sequence.

        Args:
            sequence_path: Path to the sequence directory
            sensor_label: Label attached to the produced observations

        Raises:
            FileNotFoundError: If sequence path or required files don't exist
            ValueError: If times.txt is empty or invalid
        """
        self.sequence_path = Path(sequence_path)
        self.velodyne_path = self.sequence_path / "velodyne"
        self.times_path = self.sequence_path / "times.txt"
        self.sensor_label = sensor_label

        self._validate_paths()

        self._timestamps = self._load_timestamps()
        if not self._timestamps:
            raise ValueError(f"No timestamps found in {self.times_path}")

        self._current_idx = 0

    def _validate_paths(self) -> None:
        """Validate that all required paths exist."""
        if not self.sequence_path.exists():
            raise FileNotFoundError(f"Sequence path does not exist: {self.sequence_path}")

        if not self.velodyne_path.exists():
            raise FileNotFoundError(
                f"velodyne directory not found: {self.velodyne_path}\n"
                f"Expected structure: {self.sequence_path}/velodyne/"
            )

        if not self.times_path.exists():
            raise FileNotFoundError(
                f"times.txt not found: {self.times_path}\n"
                f"This file is required to list scan timestamps."
            )

    def _load_timestamps(self) -> list[int]:
        """Parse times.txt into nanosecond timestamps.

        Format: one float number of seconds per line, e.g.
            0.000000e+00
            1.037359e-01
        """
        timestamps = []
        with open(self.times_path, "r") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                try:
                    timestamps.append(round(float(line) * NS_PER_SECOND))
                except ValueError as e:
                    raise ValueError(
                        f"Invalid line in {self.times_path}: '{line}'\n"
                        f"Expected a timestamp in seconds"
                    ) from e
        return timestamps

    def _load_scan(self, index: int) -> np.ndarray:
        """Load scan number index as an (N, 4) float32 array.

        Raises:
            FileNotFoundError: If the scan file doesn't exist
            ValueError: If the file size is not a multiple of one record
        """
        scan_path = self.velodyne_path / f"{index:06d}.bin"
        if not scan_path.exists():
            raise FileNotFoundError(f"Scan file not found: {scan_path}")

        data = np.fromfile(scan_path, dtype=np.float32)
        if data.size % 4 != 0:
            raise ValueError(f"Corrupted scan file: {scan_path}")
        return data.reshape(-1, 4)

    def get_next_observation(self) -> Observation | None:
        """Get next scan, or None when the sequence is exhausted."""
        if self._current_idx >= len(self._timestamps):
            return None

        scan = self._load_scan(self._current_idx)
        obs = Observation(
            sensor_label=self.sensor_label,
            timestamp_ns=self._timestamps[self._current_idx],
            payload=scan,
        )
        self._current_idx += 1
        return obs

    def reset(self) -> None:
        """Reset iterator to beginning of sequence."""
        self._current_idx = 0

    def __len__(self) -> int:
        return len(self._timestamps)

    def __iter__(self) -> Iterator[Observation]:
        self.reset()
        return self

    def __next__(self) -> Observation:
        obs = self.get_next_observation()
        if obs is None:
            raise StopIteration
        return obs
