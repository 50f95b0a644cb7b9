#!/usr/bin/env python3
"""
Dead Reckoning Localization Implementation.

This module implements the simplest form of robot localization using only
the commanded velocities. Dead reckoning serves as a baseline algorithm for
comparison with the EKF localizer.

Dead reckoning accumulates motion estimates without any external reference
corrections, leading to unbounded error growth.
"""

import numpy as np

from ekf_localization.config import FilterConfig
from ekf_localization.localization.motion_model import motion_jacobians
from ekf_localization.utils.data_utils import build_timeseries
from ekf_localization.utils.geometry import normalize_angle


class DeadReckoning:
    """
    Dead reckoning localization from velocity commands.

    Integrates the velocity motion model (circular arcs, straight lines for
    |ω| <= ε) from a known initial pose, ignoring every landmark observation.

    Error Characteristics
    --------------------
    The commanded velocities differ from the executed ones by the motion
    noise, so the position error grows without bound; heading errors are
    the dominant contribution over long trajectories.

    Parameters
    ----------
    x, y, theta : float, optional
        Initial pose (default: origin, heading 0).
    config : FilterConfig, optional
        Only ``eps`` is used.

    Attributes
    ----------
    states : ndarray, shape (T, 4)
        Estimated robot trajectory [t, x, y, θ] over time.
    """

    def __init__(self, x=0.0, y=0.0, theta=0.0, config=None):
        self.config = config or FilterConfig()
        self.elapsed = 0.0
        self.pose = np.array([x, y, theta], dtype=float)
        self.states = np.array([[self.elapsed, *self.pose]])

    def motion_update(self, v, w, dt):
        """
        Advance the pose by command (v, ω) held for ``dt`` seconds.

        Raises
        ------
        ValueError
            If ``dt`` is not positive.
        """
        if dt <= 0:
            raise ValueError(f"elapsed time dt must be positive, got {dt}")
        delta, _, _ = motion_jacobians(
            self.pose[2], v, w, dt, self.config.eps, self.config.straight_branch_turn
        )
        self.pose = self.pose + delta
        self.pose[2] = normalize_angle(self.pose[2])
        self.elapsed += dt
        self.states = np.append(self.states, np.array([[self.elapsed, *self.pose]]), axis=0)
        return self.pose.copy()

    def build_dataframes(self):
        self.states_df = build_timeseries(self.states, cols=["stamp", "x", "y", "theta"])
        return self.states_df
