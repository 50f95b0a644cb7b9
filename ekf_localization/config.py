"""
Configuration objects for the EKF localizer and its simulated world.

All tuning constants live in two immutable containers that are passed to
the objects that need them, so two filters in the same process can run
with different noise models.

Units follow the simulated world: distances in pixels, angles in radians,
time in seconds.
"""

import math
from dataclasses import dataclass, field

COVARIANCE_UPDATE_FORMS = ("joseph", "simple", "symmetrized")
FUSION_MODES = ("sequential", "batch")


@dataclass(frozen=True)
class FilterConfig:
    """
    Noise model and numerical policy of the EKF localizer.

    Parameters
    ----------
    alpha1, alpha2 : float
        Contribution of |v| and |w| to the linear-velocity noise std.
    alpha3, alpha4 : float
        Contribution of |v| and |w| to the angular-velocity noise std.
    detection_range_alpha : float
        Range noise std as a fraction of the observed range.
    detection_angle_sigma : float
        Bearing noise std [rad].
    eps : float
        Threshold below which |w| uses the straight-line motion forms and
        |range| marks an observation as degenerate.
    covariance_update : {"joseph", "simple", "symmetrized"}
        Form of the correction-step covariance update. ``"simple"`` is the
        textbook ``(I - KH) Σ``.
    wrap_innovation : bool
        Normalize the bearing innovation into (-π, π] before applying the gain.
    wrap_after_prediction : bool
        Normalize the heading at the end of every cycle, including cycles
        without fused landmarks.
    fusion : {"sequential", "batch"}
        Fuse observations one at a time (re-linearizing at each
        intermediate estimate) or in a single stacked update.
    max_innovation_condition : float
        Innovation covariances with a larger condition number are rejected.
    straight_branch_turn : bool
        Apply ωΔt to the heading when |w| <= eps. Disabled, the heading is
        held constant in the straight-line limit.
    """

    alpha1: float = 0.1
    alpha2: float = 0.0
    alpha3: float = 0.0001
    alpha4: float = 0.1
    detection_range_alpha: float = 0.1
    detection_angle_sigma: float = 2 * math.pi / 180
    eps: float = 1e-4
    covariance_update: str = "joseph"
    wrap_innovation: bool = True
    wrap_after_prediction: bool = True
    fusion: str = "sequential"
    max_innovation_condition: float = 1e12
    straight_branch_turn: bool = True

    def __post_init__(self):
        for name in ("alpha1", "alpha2", "alpha3", "alpha4", "detection_range_alpha",
                     "detection_angle_sigma"):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f"{name} must be a finite non-negative number, got {value!r}")
        if not self.eps > 0:
            raise ValueError(f"eps must be positive, got {self.eps!r}")
        if self.covariance_update not in COVARIANCE_UPDATE_FORMS:
            raise ValueError(
                f"covariance_update must be one of {COVARIANCE_UPDATE_FORMS}, "
                f"got {self.covariance_update!r}"
            )
        if self.fusion not in FUSION_MODES:
            raise ValueError(f"fusion must be one of {FUSION_MODES}, got {self.fusion!r}")
        if not self.max_innovation_condition > 1:
            raise ValueError("max_innovation_condition must be greater than 1")

    @property
    def motion_alphas(self):
        return (self.alpha1, self.alpha2, self.alpha3, self.alpha4)

    @classmethod
    def reference(cls, **overrides):
        """
        Profile that reproduces the textbook recursion step for step.

        Uses the ``(I - KH) Σ`` covariance update, the raw bearing
        difference as innovation and wraps the heading only after a
        landmark has been fused. Commands with |w| <= eps leave the
        heading unchanged.
        """
        params = dict(
            covariance_update="simple",
            wrap_innovation=False,
            wrap_after_prediction=False,
            fusion="sequential",
            straight_branch_turn=False,
        )
        params.update(overrides)
        return cls(**params)


# (x, y, red, green, blue)
DEFAULT_LANDMARKS = (
    (100.0, 100.0, 1.0, 0.0, 0.0),
    (500.0, 100.0, 1.0, 0.0, 0.0),
    (500.0, 500.0, 1.0, 0.0, 0.0),
    (100.0, 500.0, 1.0, 0.0, 0.0),
    (300.0, 300.0, 1.0, 0.0, 0.0),
)


@dataclass(frozen=True)
class WorldConfig:
    """Static description of the simulated world, robot and sensor."""

    width: float = 600.0
    height: float = 600.0
    # boundary the robot may not leave: (x1, x2, y1, y2)
    boundary: tuple = (50.0, 550.0, 50.0, 550.0)
    landmarks: tuple = field(default=DEFAULT_LANDMARKS)
    robot_vel: float = 100.0
    robot_yaw_vel: float = 60 * math.pi / 180
    fov: float = 45 * math.pi / 180
    detection_range: float = 200.0
    landmark_range_sigma: float = 20.0
    landmark_angle_sigma: float = 2 * math.pi / 180
    # 95% confidence for a 2-dof Gaussian
    ellipse_chi: float = 2.4477

    def __post_init__(self):
        x1, x2, y1, y2 = self.boundary
        if not (0 <= x1 < x2 <= self.width and 0 <= y1 < y2 <= self.height):
            raise ValueError(f"boundary {self.boundary} does not fit a {self.width}x{self.height} world")
        if self.detection_range <= 0 or self.fov <= 0:
            raise ValueError("detection_range and fov must be positive")

    def inside(self, x, y):
        x1, x2, y1, y2 = self.boundary
        return x1 <= x <= x2 and y1 <= y <= y2
