"""Localization algorithms: EKF with known landmarks and a dead-reckoning baseline."""

from .dead_reckoning import DeadReckoning
from .EKF import EKFLocalizer, UpdateReport
from .measurement_model import SingularInnovationError

__all__ = ["DeadReckoning", "EKFLocalizer", "SingularInnovationError", "UpdateReport"]
