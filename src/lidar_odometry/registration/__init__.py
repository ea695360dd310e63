"""Point-cloud registration oracle and adapter."""

from .icp import PointToPointICP, best_fit_se3
from .oracle import RegistrationAdapter, RegistrationOracle, RegistrationResult

__all__ = [
    "RegistrationOracle",
    "RegistrationResult",
    "RegistrationAdapter",
    "PointToPointICP",
    "best_fit_se3",
]
