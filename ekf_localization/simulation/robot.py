#!/usr/bin/env python3
"""
Simulated differential-drive robot with a range-bearing landmark sensor.

Produces the ground truth and the noisy inputs that the localizer consumes:
the robot executes each velocity command perturbed by the same motion-noise
model the filter assumes, and its sensor reports landmarks inside a
forward-facing field of view with Gaussian range/bearing noise.
"""

import numpy as np

from ekf_localization.config import FilterConfig, WorldConfig
from ekf_localization.localization.motion_model import sample_motion
from ekf_localization.utils.geometry import normalize_angle
from ekf_localization.world.landmarks import LandmarkObservation, landmark_range_bearing


class SimulatedRobot:
    """
    Ground-truth robot moving inside the world boundary.

    Parameters
    ----------
    x, y, theta : float
        Initial true pose.
    world : WorldConfig, optional
        Boundary, sensor geometry and sensor noise.
    config : FilterConfig, optional
        Motion-noise coefficients used to perturb the commands.
    rng : numpy.random.Generator, optional
        Source of all noise; pass a seeded generator for reproducible runs.
    """

    def __init__(self, x, y, theta, world=None, config=None, rng=None):
        self.world = world or WorldConfig()
        self.config = config or FilterConfig()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.pose = np.array([x, y, normalize_angle(theta)], dtype=float)

    def move(self, v, w, dt):
        """Execute a noisy version of command (v, ω) and stay inside the boundary."""
        pose = sample_motion(self.pose, v, w, dt, self.config, self.rng)
        x1, x2, y1, y2 = self.world.boundary
        pose[0] = np.clip(pose[0], x1, x2)
        pose[1] = np.clip(pose[1], y1, y2)
        pose[2] = normalize_angle(pose[2])
        self.pose = pose
        return pose.copy()

    def visible(self, landmark):
        """True range/bearing of ``landmark`` if the sensor can see it, else None."""
        r, b = landmark_range_bearing(landmark, *self.pose)
        if r > self.world.detection_range or abs(b) > self.world.fov / 2:
            return None
        return r, b

    def sense(self, registry):
        """
        Noisy observations of every landmark inside the field of view.

        ``world.fov`` is the full opening angle of the sensor cone, centred
        on the heading. Noisy ranges are clipped at zero.
        """
        observations = []
        for landmark in registry:
            seen = self.visible(landmark)
            if seen is None:
                continue
            r, b = seen
            r = max(0.0, r + self.rng.normal(0.0, self.world.landmark_range_sigma))
            b = normalize_angle(b + self.rng.normal(0.0, self.world.landmark_angle_sigma))
            observations.append(LandmarkObservation.of(landmark, r, b))
        return observations


def autopilot_command(pose, world, dt, lookahead=5):
    """
    Wander command: drive straight at ``world.robot_vel`` and turn in place
    while a straight step of ``lookahead * dt`` would leave the boundary.
    """
    x, y, theta = pose
    reach = world.robot_vel * dt * lookahead
    if world.inside(x + reach * np.cos(theta), y + reach * np.sin(theta)):
        return world.robot_vel, 0.0
    return 0.0, world.robot_yaw_vel
