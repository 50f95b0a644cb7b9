#!/usr/bin/env python3
"""
Extended Kalman Filter (EKF) Localization Implementation

This module implements the Extended Kalman Filter for mobile robot localization
with known landmark correspondences, following the algorithm described in
"Probabilistic Robotics" by Thrun, Fox, and Burgard, with the velocity motion
model made well defined for zero angular velocity.

References
----------
.. [1] Thrun, S., Fox, D., & Burgard, W. (2005). Probabilistic Robotics.
       MIT Press. Chapter 7, Table 7.2, Page 204.

Notes
-----
The EKF localization algorithm represents beliefs bel(x_t) by their first and
second moments: the mean μ_t and the covariance Σ_t. The robot observes
ranges and bearings to landmarks whose world positions are known and whose
identities are given by the caller.
"""

import logging
from typing import NamedTuple

import numpy as np

from ekf_localization.config import FilterConfig
from ekf_localization.localization.measurement_model import (
    SingularInnovationError,
    fuse_batch,
    fuse_observation,
)
from ekf_localization.localization.motion_model import predict_motion
from ekf_localization.utils.checks import FilterStateError, validate_filter_state
from ekf_localization.utils.data_utils import build_timeseries
from ekf_localization.utils.geometry import covariance_ellipse, normalize_angle

logger = logging.getLogger(__name__)


class UpdateReport(NamedTuple):
    """Outcome of one ``EKFLocalizer.update`` cycle."""

    fused: int
    skipped: int
    rejected: int


class EKFLocalizer:
    """
    Extended Kalman Filter for Mobile Robot Localization

    Maintains a Gaussian belief N(μ, Σ) over the planar pose x = [x, y, θ]ᵀ
    and updates it once per tick from a velocity command and the landmarks
    seen during that tick.

    Mathematical Foundation
    ----------------------
    1. Motion Update (Prediction), see ``motion_model``:
       - μ̄ = g(u, μ)
       - Σ̄ = G Σ Gᵀ + V M Vᵀ

    2. Measurement Update (Correction), see ``measurement_model``, once per
       observation with range > ε:
       - K = Σ̄ Hᵀ (H Σ̄ Hᵀ + Q)⁻¹
       - μ = μ̄ + K (z - ẑ)
       - Σ = (I - K H) Σ̄   (or the Joseph form)

    Observations are fused one at a time, each linearized at the estimate
    produced by the previous one. The final estimate therefore depends
    slightly on the order in which observations are supplied; this is a
    property of sequential EKF updates. ``FilterConfig(fusion="batch")``
    fuses all observations of a tick in a single, order-independent update.

    Parameters
    ----------
    config : FilterConfig, optional
        Noise model and numerical policy. Defaults to ``FilterConfig()``.
    record_history : bool, optional
        Keep the pose and covariance after each update (default: True).

    Attributes
    ----------
    states : numpy.ndarray, shape (n_updates + 1, 4)
        Recorded trajectory [t, x, y, θ]; the first row is the pose at
        ``init()``/``set_state()`` time.
    covariances : list of numpy.ndarray
        Recorded 3×3 covariances, aligned with ``states``.

    Examples
    --------
    >>> from ekf_localization.localization import EKFLocalizer
    >>> from ekf_localization.world.landmarks import Landmark, LandmarkObservation
    >>>
    >>> ekf = EKFLocalizer()
    >>> ekf.set_state(100.0, 100.0, 0.0)
    >>> ekf.set_covariance(np.diag([25.0, 25.0, 0.01]))
    >>> seen = [LandmarkObservation.of(Landmark(300.0, 100.0), 201.0, 0.01)]
    >>> report = ekf.update(100.0, 0.0, seen, 0.1)
    >>> major, minor, theta = ekf.pose_ellipse(scale=2.4477)

    Notes
    -----
    Instances are not thread-safe: calls to ``update``, ``set_state`` and
    ``init`` on one filter must be serialized by the caller.
    """

    def __init__(self, config=None, record_history=True):
        self.config = config or FilterConfig()
        self.record_history = record_history
        self.mu = np.zeros(3)
        self.sigma = np.zeros((3, 3))
        self.init()

    # ------------------------------------------------------------------ #
    # State management
    # ------------------------------------------------------------------ #

    def init(self):
        """
        Reset the covariance to zero (perfectly known pose).

        The mean is left as is. Callers starting from an uncertain pose
        should follow with ``set_covariance``.
        """
        self.sigma = np.zeros((3, 3))
        self.elapsed = 0.0
        self._reset_history()

    def set_state(self, x, y, yaw):
        """Overwrite the mean pose (yaw wrapped into (-π, π]); the covariance is kept."""
        self.mu = np.array([x, y, normalize_angle(float(yaw))], dtype=float)
        self._reset_history()

    def set_covariance(self, sigma):
        """
        Overwrite the covariance, e.g. after re-localization.

        Raises
        ------
        FilterStateError
            If ``sigma`` is not a finite, symmetric PSD 3×3 matrix.
        """
        sigma = np.array(sigma, dtype=float)
        validate_filter_state(np.array([0.0, 0.0, 0.0]), sigma)
        self.sigma = sigma
        self._reset_history()

    def pose(self):
        return float(self.mu[0]), float(self.mu[1]), float(self.mu[2])

    def heading(self):
        return float(self.mu[2])

    @property
    def x(self):
        return float(self.mu[0])

    @property
    def y(self):
        return float(self.mu[1])

    @property
    def yaw(self):
        return float(self.mu[2])

    @property
    def mean(self):
        return self.mu.copy()

    @property
    def covariance(self):
        return self.sigma.copy()

    # ------------------------------------------------------------------ #
    # Recursion
    # ------------------------------------------------------------------ #

    def predict(self, v, w, dt):
        """Predicted (μ̄, Σ̄) for command (v, ω) over ``dt``; stored state is unchanged."""
        self._validate_command(v, w, dt)
        return predict_motion(self.mu, self.sigma, v, w, dt, self.config)

    def correct(self, observations, mu, sigma):
        """
        Fuse ``observations`` into (μ, Σ) without touching the stored state.

        Observations with |range| <= ε are skipped. Observations whose
        innovation covariance cannot be inverted are rejected with a warning
        and the remaining ones are still fused.

        Returns
        -------
        mu, sigma : numpy.ndarray
            Corrected belief.
        report : UpdateReport
        """
        observations = list(observations)
        valid = [o for o in observations if abs(o.range) > self.config.eps]
        skipped = len(observations) - len(valid)
        if skipped:
            logger.debug(f"Skipped {skipped} observation(s) with near-zero range")

        if self.config.fusion == "batch":
            try:
                mu, sigma = fuse_batch(mu, sigma, valid, self.config)
            except SingularInnovationError as err:
                logger.warning(f"Batch correction of {len(valid)} observation(s) rejected: {err}")
                return mu, sigma, UpdateReport(0, skipped, len(valid))
            return mu, sigma, UpdateReport(len(valid), skipped, 0)

        fused = rejected = 0
        for observation in valid:
            try:
                mu, sigma = fuse_observation(mu, sigma, observation, self.config)
            except SingularInnovationError as err:
                rejected += 1
                logger.warning(
                    f"Observation of landmark ({observation.x}, {observation.y}) rejected: {err}"
                )
                continue
            fused += 1
        return mu, sigma, UpdateReport(fused, skipped, rejected)

    def update(self, v, w, observations, dt):
        """
        Run one prediction/correction cycle and commit the result.

        Parameters
        ----------
        v : float
            Linear velocity command.
        w : float
            Angular velocity command [rad/s].
        observations : sequence of LandmarkObservation
            Landmarks seen this tick, already associated with their known
            world positions.
        dt : float
            Elapsed time [s], must be positive.

        Returns
        -------
        UpdateReport
            Number of fused, skipped (near-zero range) and rejected
            (singular innovation) observations.

        Raises
        ------
        ValueError
            If ``dt <= 0`` or any of ``v``, ``w``, ``dt`` is not finite. The
            stored state is unchanged in that case.
        """
        observations = list(observations)
        mu, sigma = self.predict(v, w, dt)
        mu, sigma, report = self.correct(observations, mu, sigma)

        if self.config.wrap_after_prediction:
            mu[2] = normalize_angle(mu[2])

        self.mu = mu
        self.sigma = sigma
        self.elapsed += dt
        if self.record_history:
            self._record()

        logger.debug(
            f"t={self.elapsed:.3f}s pose=({mu[0]:.2f}, {mu[1]:.2f}, {mu[2]:.3f}) "
            f"fused={report.fused} skipped={report.skipped} rejected={report.rejected}"
        )
        return report

    # ------------------------------------------------------------------ #
    # Derived quantities
    # ------------------------------------------------------------------ #

    @staticmethod
    def ellipse(block, scale=1.0):
        """(major, minor, θ) of a 2×2 covariance block, see ``covariance_ellipse``."""
        return covariance_ellipse(block, scale)

    def pose_ellipse(self, scale=1.0):
        """Uncertainty ellipse of the position (x, y block of Σ)."""
        return covariance_ellipse(self.sigma[:2, :2], scale)

    def check_invariants(self, tol=1e-9):
        """
        Raise ``FilterStateError`` unless μ is finite with a wrapped heading
        and Σ is finite, symmetric and positive semi-definite.
        """
        validate_filter_state(self.mu, self.sigma, tol)

    def is_consistent(self, tol=1e-9):
        try:
            self.check_invariants(tol)
        except FilterStateError:
            return False
        return True

    # ------------------------------------------------------------------ #
    # History
    # ------------------------------------------------------------------ #

    def _reset_history(self):
        self.states = np.array([[self.elapsed, *self.mu]])
        self.covariances = [self.sigma.copy()]

    def _record(self):
        self.states = np.append(self.states, np.array([[self.elapsed, *self.mu]]), axis=0)
        self.covariances.append(self.sigma.copy())

    def build_dataframes(self):
        """
        Convert the recorded history to a time-indexed DataFrame.

        Creates ``self.states_df`` with columns ['x', 'y', 'theta',
        'sigma_x', 'sigma_y', 'sigma_theta'] (standard deviations).
        """
        std = np.sqrt(np.clip([np.diag(c) for c in self.covariances], 0.0, None))
        self.states_df = build_timeseries(
            np.column_stack([self.states, std]),
            cols=["stamp", "x", "y", "theta", "sigma_x", "sigma_y", "sigma_theta"],
        )
        return self.states_df

    @staticmethod
    def _validate_command(v, w, dt):
        if not all(np.isfinite([v, w, dt])):
            raise ValueError(f"command must be finite, got v={v}, w={w}, dt={dt}")
        if dt <= 0:
            raise ValueError(f"elapsed time dt must be positive, got {dt}")
