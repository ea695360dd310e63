"""Scan rate gating and constant-velocity motion prediction."""

from __future__ import annotations

from .pose import SE3, Twist

NS_PER_SECOND = 1e9


def seconds_between(t0_ns: int, t1_ns: int) -> float:
    """Elapsed time from t0 to t1 in seconds (negative if out of order)."""
    return (t1_ns - t0_ns) / NS_PER_SECOND


class RateGate:
    """Drops scans arriving too soon after the last processed one."""

    def __init__(self, min_time_between_scans: float) -> None:
        """Initialize rate gate.

        Args:
            min_time_between_scans: Minimum spacing between processed scans (s)
        """
        self._min_dt = min_time_between_scans

    def accept(self, last_timestamp_ns: int | None, timestamp_ns: int) -> bool:
        """Return True if a scan at timestamp_ns should be processed."""
        if last_timestamp_ns is None:
            return True
        return seconds_between(last_timestamp_ns, timestamp_ns) >= self._min_dt


class ConstantVelocityModel:
    """Initial guess and twist update under a constant-velocity assumption.

    The model is translation-only: the rotational part of the guess is
    always identity and the angular twist components are never updated.
    """

    @staticmethod
    def predict(twist: Twist, dt: float) -> SE3:
        """Predict the relative pose after dt seconds.

        Returns identity when dt is zero (including "no previous scan").
        """
        if dt == 0.0:
            return SE3.identity()
        return SE3.from_translation(twist.vx * dt, twist.vy * dt, twist.vz * dt)

    @staticmethod
    def update(twist: Twist, relative_pose: SE3, dt: float) -> Twist:
        """Estimate a new twist from the registered relative pose.

        Returns the previous twist unchanged when dt is zero.
        """
        if dt == 0.0:
            return twist
        t = relative_pose.translation
        return Twist(
            vx=t[0] / dt,
            vy=t[1] / dt,
            vz=t[2] / dt,
            wx=twist.wx,
            wy=twist.wy,
            wz=twist.wz,
        )
