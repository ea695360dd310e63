"""SE(3) pose and twist representations for LiDAR odometry."""

from __future__ import annotations

from dataclasses import dataclass

import cv2
import numpy as np


@dataclass
class SE3:
    """Rigid body transformation (rotation + translation) in SE(3).

    Relative poses follow the "to with respect to from" convention: if
    T = T_from_to, then a point expressed in the "to" frame maps into the
    "from" frame as:

        p_from = R @ p_to + t

    Attributes:
        rotation: 3x3 orthonormal rotation matrix (det = +1)
        translation: 3D translation vector
    """

    rotation: np.ndarray  # 3x3 rotation matrix
    translation: np.ndarray  # (3,) translation vector

    def __post_init__(self) -> None:
        """Validate and normalize inputs."""
        self.rotation = np.asarray(self.rotation, dtype=np.float64)
        self.translation = np.asarray(self.translation, dtype=np.float64).flatten()

        if self.rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got {self.rotation.shape}")
        if self.translation.shape != (3,):
            raise ValueError(
                f"Translation must be (3,), got {self.translation.shape}"
            )

    @classmethod
    def identity(cls) -> SE3:
        """Create identity transformation (no rotation, no translation)."""
        return cls(rotation=np.eye(3), translation=np.zeros(3))

    @classmethod
    def from_translation(cls, x: float, y: float, z: float) -> SE3:
        """Create a pure translation."""
        return cls(rotation=np.eye(3), translation=np.array([x, y, z]))

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> SE3:
        """Create SE3 from 4x4 homogeneous transformation matrix.

        Args:
            T: 4x4 transformation matrix of the form:
               [[R  t]
                [0  1]]

        Returns:
            SE3 transformation
        """
        T = np.asarray(T)
        if T.shape != (4, 4):
            raise ValueError(f"Transform must be 4x4, got {T.shape}")

        return cls(rotation=T[:3, :3], translation=T[:3, 3])

    @classmethod
    def from_rvec_tvec(cls, rvec: np.ndarray, tvec: np.ndarray) -> SE3:
        """Create SE3 from a Rodrigues rotation vector and translation.

        Args:
            rvec: 3D Rodrigues rotation vector (axis * angle)
            tvec: 3D translation vector

        Returns:
            SE3 transformation
        """
        R, _ = cv2.Rodrigues(np.asarray(rvec, dtype=np.float64).flatten())
        return cls(rotation=R, translation=np.asarray(tvec).flatten())

    def to_matrix(self) -> np.ndarray:
        """Convert to 4x4 homogeneous transformation matrix."""
        T = np.eye(4, dtype=np.float64)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    def to_rvec_tvec(self) -> tuple[np.ndarray, np.ndarray]:
        """Convert to Rodrigues vector and translation.

        Returns:
            Tuple of (rvec, tvec) where rvec is 3D Rodrigues vector
        """
        rvec, _ = cv2.Rodrigues(self.rotation)
        return rvec.flatten(), self.translation.copy()

    def inverse(self) -> SE3:
        """Compute the inverse transformation T^{-1} = [R^T, -R^T @ t]."""
        R_inv = self.rotation.T
        t_inv = -R_inv @ self.translation
        return SE3(rotation=R_inv, translation=t_inv)

    def compose(self, other: SE3) -> SE3:
        """Compose with another transformation: self @ other.

        Example:
            T_root_prev.compose(T_prev_curr) gives T_root_curr
        """
        R = self.rotation @ other.rotation
        t = self.rotation @ other.translation + self.translation
        return SE3(rotation=R, translation=t)

    def norm(self) -> float:
        """Euclidean norm of the translational part."""
        return float(np.linalg.norm(self.translation))

    @property
    def rotation_angle(self) -> float:
        """Rotation angle in radians [0, pi]."""
        rvec, _ = self.to_rvec_tvec()
        return float(np.linalg.norm(rvec))

    def as_string(self) -> str:
        """Compact "[x y z | rx ry rz]" representation for log lines."""
        rvec, t = self.to_rvec_tvec()
        return (
            f"[{t[0]:.3f} {t[1]:.3f} {t[2]:.3f} | "
            f"{rvec[0]:.3f} {rvec[1]:.3f} {rvec[2]:.3f}]"
        )

    def __repr__(self) -> str:
        """Return string representation."""
        t = self.translation
        return f"SE3(translation=[{t[0]:.3f}, {t[1]:.3f}, {t[2]:.3f}])"

    def __matmul__(self, other: SE3) -> SE3:
        """Matrix multiplication operator for composition."""
        return self.compose(other)

    def __sub__(self, other: SE3) -> SE3:
        """Inverse composition: a - b is the pose of a seen from b."""
        return other.inverse().compose(self)


@dataclass
class Twist:
    """Velocity estimate of the sensor.

    Only the linear part is estimated; the angular part stays at zero so
    the constant-velocity guess is translation-only.
    """

    vx: float = 0.0
    vy: float = 0.0
    vz: float = 0.0
    wx: float = 0.0
    wy: float = 0.0
    wz: float = 0.0

    def as_string(self) -> str:
        return (
            f"v=[{self.vx:.3f} {self.vy:.3f} {self.vz:.3f}] m/s "
            f"w=[{self.wx:.3f} {self.wy:.3f} {self.wz:.3f}] rad/s"
        )
