"""
Angle and covariance-ellipse helpers shared by the filter, the simulator
and the plotting code.
"""

import numpy as np
from scipy import stats


def normalize_angle(angle):
    """
    Wrap an angle (or array of angles) into (-π, π].

    Values already inside the interval are returned unchanged, so wrapping
    is idempotent bit for bit.

    Parameters
    ----------
    angle : float or array_like
        Angle(s) in radians.

    Returns
    -------
    float or numpy.ndarray
        Wrapped angle(s), congruent to the input modulo 2π.

    Examples
    --------
    >>> normalize_angle(3 * np.pi / 2)
    -1.5707963267948966
    >>> normalize_angle(-np.pi)
    3.141592653589793
    """
    angle = np.asarray(angle, dtype=float)
    wrapped = np.pi - np.mod(np.pi - angle, 2.0 * np.pi)
    # np.mod may round up to exactly 2π for tiny negative arguments
    wrapped = np.where(wrapped <= -np.pi, wrapped + 2.0 * np.pi, wrapped)
    in_range = (angle > -np.pi) & (angle <= np.pi)
    result = np.where(in_range, angle, wrapped)
    if result.ndim == 0:
        return float(result)
    return result


def covariance_ellipse(block, scale=1.0):
    """
    Semi-axes and orientation of the ellipse described by a 2×2 covariance.

    Parameters
    ----------
    block : array_like, shape (2, 2)
        Symmetric covariance sub-block (usually the x/y block of Σ).
    scale : float, optional
        Multiplier applied to both semi-axes, e.g. ``confidence_scale(0.95)``.

    Returns
    -------
    major : float
        Length of the major semi-axis (sqrt of the larger eigenvalue).
    minor : float
        Length of the minor semi-axis.
    theta : float
        Angle of the major axis w.r.t. the x-axis, in (-π/2, π/2].

    Notes
    -----
    Eigenvalues slightly below zero from rounding are clipped to zero.
    """
    block = np.asarray(block, dtype=float)
    if block.shape != (2, 2):
        raise ValueError(f"covariance block must be 2x2, got shape {block.shape}")

    eigenvalues, eigenvectors = np.linalg.eigh(block)
    e0, e1 = np.sqrt(np.clip(eigenvalues, 0.0, None))

    if e0 > e1:
        theta = np.arctan2(eigenvectors[1, 0], eigenvectors[0, 0])
        major, minor = e0, e1
    else:
        theta = np.arctan2(eigenvectors[1, 1], eigenvectors[0, 1])
        major, minor = e1, e0

    # An axis has no direction: fold the eigenvector sign ambiguity
    if theta <= -np.pi / 2:
        theta += np.pi
    elif theta > np.pi / 2:
        theta -= np.pi

    return float(major * scale), float(minor * scale), float(theta)


def confidence_scale(confidence=0.95, dof=2):
    """
    Mahalanobis radius enclosing ``confidence`` of a ``dof``-dimensional Gaussian.

    ``confidence_scale(0.95)`` is ≈ 2.4477, the usual factor for drawing a 95%
    position ellipse.
    """
    if not 0 < confidence < 1:
        raise ValueError(f"confidence must be in (0, 1), got {confidence}")
    return float(np.sqrt(stats.chi2.ppf(confidence, dof)))
