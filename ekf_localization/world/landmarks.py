"""
Known landmarks and the exact range-bearing sensor geometry.

The filter does not own landmark positions: callers look them up in a
``LandmarkRegistry`` and hand the filter ``LandmarkObservation`` objects
that already pair the measured range/bearing with the world position.
"""

import math
from typing import NamedTuple

from ekf_localization.config import WorldConfig
from ekf_localization.utils.geometry import normalize_angle


class Landmark(NamedTuple):
    """Fixed world point used as a localization reference."""

    x: float
    y: float
    color: tuple = (1.0, 0.0, 0.0)


class LandmarkObservation(NamedTuple):
    """
    Range/bearing measurement of a landmark whose position is known.

    ``range`` is the measured distance (>= 0) and ``bearing`` the measured
    angle relative to the robot heading, in (-π, π].
    """

    x: float
    y: float
    range: float
    bearing: float

    @classmethod
    def of(cls, landmark, range, bearing):
        return cls(landmark.x, landmark.y, float(range), float(bearing))


def landmark_range_bearing(landmark, x, y, theta):
    """
    Noise-free range and bearing from pose (x, y, θ) to ``landmark``.

    Parameters
    ----------
    landmark : Landmark or LandmarkObservation
        Anything with ``x`` and ``y`` world coordinates.
    x, y, theta : float
        Candidate robot pose.

    Returns
    -------
    range : float
        Euclidean distance to the landmark.
    bearing : float
        ``atan2(dy, dx) - θ`` wrapped into (-π, π].
    """
    dx = landmark.x - x
    dy = landmark.y - y
    return math.hypot(dx, dy), normalize_angle(math.atan2(dy, dx) - theta)


class LandmarkRegistry:
    """
    Immutable lookup table ``landmark_id -> Landmark``.

    Examples
    --------
    >>> registry = LandmarkRegistry({0: Landmark(100, 100), 1: Landmark(500, 100)})
    >>> obs = registry.observe(1, 120.0, 0.3)
    >>> obs.x, obs.y
    (500, 100)
    """

    def __init__(self, landmarks):
        self._landmarks = dict(landmarks)

    @classmethod
    def default(cls, world=None):
        world = world or WorldConfig()
        return cls(
            {i: Landmark(x, y, (r, g, b)) for i, (x, y, r, g, b) in enumerate(world.landmarks)}
        )

    def get(self, landmark_id):
        try:
            return self._landmarks[landmark_id]
        except KeyError:
            raise KeyError(f"unknown landmark id {landmark_id!r}") from None

    def observe(self, landmark_id, range, bearing):
        return LandmarkObservation.of(self.get(landmark_id), range, bearing)

    def items(self):
        return self._landmarks.items()

    def __iter__(self):
        return iter(self._landmarks.values())

    def __len__(self):
        return len(self._landmarks)
