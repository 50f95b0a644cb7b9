"""
Sanity checks on a Gaussian pose belief.

The recursion itself has no inline assertions; these helpers let tests and
callers detect NaN/Inf propagation or a covariance that drifted away from
symmetric positive semi-definite.
"""

import numpy as np


class FilterStateError(ValueError):
    """Raised when a mean/covariance pair violates the filter invariants."""


def validate_filter_state(mu, sigma, tol=1e-9):
    """
    Check that ``(mu, sigma)`` is a valid pose belief.

    Parameters
    ----------
    mu : array_like, shape (3,)
        Mean pose [x, y, θ].
    sigma : array_like, shape (3, 3)
        Pose covariance.
    tol : float, optional
        Tolerance for asymmetry and negative eigenvalues, relative to the
        largest absolute entry of ``sigma`` (absolute when sigma is zero).

    Raises
    ------
    FilterStateError
        Describing the first violated invariant.
    """
    mu = np.asarray(mu, dtype=float)
    sigma = np.asarray(sigma, dtype=float)

    if mu.shape != (3,):
        raise FilterStateError(f"mean must have shape (3,), got {mu.shape}")
    if sigma.shape != (3, 3):
        raise FilterStateError(f"covariance must have shape (3, 3), got {sigma.shape}")
    if not np.all(np.isfinite(mu)):
        raise FilterStateError(f"mean is not finite: {mu}")
    if not np.all(np.isfinite(sigma)):
        raise FilterStateError("covariance contains NaN or Inf")
    if not -np.pi < mu[2] <= np.pi:
        raise FilterStateError(f"heading {mu[2]} is outside (-pi, pi]")

    magnitude = max(float(np.max(np.abs(sigma))), 1.0)
    asymmetry = float(np.max(np.abs(sigma - sigma.T)))
    if asymmetry > tol * magnitude:
        raise FilterStateError(f"covariance is not symmetric (max |P - P^T| = {asymmetry:.3e})")

    min_eigenvalue = float(np.min(np.linalg.eigvalsh(0.5 * (sigma + sigma.T))))
    if min_eigenvalue < -tol * magnitude:
        raise FilterStateError(
            f"covariance is not positive semi-definite (min eigenvalue {min_eigenvalue:.3e})"
        )


def is_valid_filter_state(mu, sigma, tol=1e-9):
    try:
        validate_filter_state(mu, sigma, tol)
    except FilterStateError:
        return False
    return True
