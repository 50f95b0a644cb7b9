#!/usr/bin/env python3
"""
Range-Bearing Measurement Model and the EKF Correction Step

Correction half of the EKF localization recursion (Probabilistic Robotics,
Table 7.2, lines 8-17) for landmarks with known positions.

Measurement Model:
    r = √((m_x - x)² + (m_y - y)²)
    φ = atan2(m_y - y, m_x - x) - θ

Measurement Jacobian (q = r²):
    H = [[-(m_x - x)/r, -(m_y - y)/r,  0],
         [ (m_y - y)/q, -(m_x - x)/q, -1]]

Correction:
    S = H Σ Hᵀ + Q
    K = Σ Hᵀ S⁻¹
    μ = μ + K (z - ẑ)
    Σ = (I - K H) Σ                 ("simple")
    Σ = (I - K H) Σ (I - K H)ᵀ + K Q Kᵀ   ("joseph")

Both forms are algebraically equal for the optimal gain; the Joseph form
keeps Σ symmetric positive semi-definite under rounding.
"""

import numpy as np

from ekf_localization.utils.geometry import normalize_angle
from ekf_localization.world.landmarks import landmark_range_bearing


class SingularInnovationError(np.linalg.LinAlgError):
    """The innovation covariance of an observation cannot be inverted reliably."""


def measurement_noise(observed_range, config):
    """Q = diag((α_r · r)², σ_φ²), the range std growing with the observed range."""
    return np.diag(
        [
            (observed_range * config.detection_range_alpha) ** 2,
            config.detection_angle_sigma**2,
        ]
    )


def measurement_jacobian(landmark, mu, expected_range):
    """
    Jacobian of (range, bearing) w.r.t. (x, y, θ), evaluated at ``mu``.

    ∂φ/∂θ is -1 because the bearing is measured relative to the heading.
    """
    dx = landmark.x - mu[0]
    dy = landmark.y - mu[1]
    q = expected_range * expected_range
    return np.array(
        [
            [-dx / expected_range, -dy / expected_range, 0.0],
            [dy / q, -dx / q, -1.0],
        ]
    )


def innovation(z, zhat, wrap=True):
    """
    z - ẑ for a (range, bearing) pair.

    With ``wrap`` the bearing difference is normalized into (-π, π], so a
    measurement just across the ±π seam gives a small correction instead of
    one close to 2π.
    """
    diff = np.asarray(z, dtype=float) - np.asarray(zhat, dtype=float)
    if wrap:
        diff[1::2] = normalize_angle(diff[1::2])
    return diff


def update_covariance(sigma, K, H, Q, form="joseph"):
    I_KH = np.identity(sigma.shape[0]) - K.dot(H)
    if form == "simple":
        return I_KH.dot(sigma)
    if form == "symmetrized":
        P = I_KH.dot(sigma)
        return 0.5 * (P + P.T)
    if form == "joseph":
        return I_KH.dot(sigma).dot(I_KH.T) + K.dot(Q).dot(K.T)
    raise ValueError(f"unknown covariance update form {form!r}")


def kalman_gain(sigma, H, Q, max_condition=1e12):
    """
    K = Σ Hᵀ S⁻¹ with S = H Σ Hᵀ + Q.

    Raises
    ------
    SingularInnovationError
        If S is non-finite, singular or its condition number exceeds
        ``max_condition``.
    """
    S = H.dot(sigma).dot(H.T) + Q
    if not np.all(np.isfinite(S)):
        raise SingularInnovationError("innovation covariance is not finite")
    condition = np.linalg.cond(S)
    if not np.isfinite(condition) or condition > max_condition:
        raise SingularInnovationError(f"innovation covariance is ill-conditioned (cond={condition:.3e})")
    try:
        S_inv = np.linalg.inv(S)
    except np.linalg.LinAlgError as err:
        raise SingularInnovationError(str(err)) from err
    return sigma.dot(H.T).dot(S_inv)


def _linearize(observation, mu, config):
    range_expected, bearing_expected = landmark_range_bearing(observation, mu[0], mu[1], mu[2])
    if range_expected <= config.eps:
        # H has a 1/r singularity when the estimate sits on the landmark
        raise SingularInnovationError(
            f"predicted pose coincides with landmark at ({observation.x}, {observation.y})"
        )
    H = measurement_jacobian(observation, mu, range_expected)
    Q = measurement_noise(observation.range, config)
    return np.array([range_expected, bearing_expected]), H, Q


def fuse_observation(mu, sigma, observation, config):
    """
    Fuse one landmark observation into (μ, Σ).

    Parameters
    ----------
    mu : numpy.ndarray, shape (3,)
    sigma : numpy.ndarray, shape (3, 3)
    observation : LandmarkObservation
        Measured range/bearing with the landmark's known position.
    config : FilterConfig

    Returns
    -------
    mu : numpy.ndarray, shape (3,)
        Corrected mean, heading wrapped into (-π, π].
    sigma : numpy.ndarray, shape (3, 3)
        Corrected covariance.

    Raises
    ------
    SingularInnovationError
        The observation could not be fused; inputs are left untouched.
    """
    zhat, H, Q = _linearize(observation, mu, config)
    K = kalman_gain(sigma, H, Q, config.max_innovation_condition)

    z = np.array([observation.range, observation.bearing])
    mu = mu + K.dot(innovation(z, zhat, config.wrap_innovation))
    sigma = update_covariance(sigma, K, H, Q, config.covariance_update)

    mu[2] = normalize_angle(mu[2])
    return mu, sigma


def fuse_batch(mu, sigma, observations, config):
    """
    Fuse several observations in one stacked update linearized at ``mu``.

    Unlike sequential fusion the result does not depend on the order of
    ``observations``. Returns the inputs unchanged for an empty list.
    """
    if len(observations) == 0:
        return mu, sigma

    zhats, Hs, variances = [], [], []
    for observation in observations:
        zhat, H, Q = _linearize(observation, mu, config)
        zhats.append(zhat)
        Hs.append(H)
        variances.extend(np.diag(Q))

    H = np.vstack(Hs)
    Q = np.diag(variances)
    z = np.array([[o.range, o.bearing] for o in observations]).ravel()
    zhat = np.concatenate(zhats)

    K = kalman_gain(sigma, H, Q, config.max_innovation_condition)
    mu = mu + K.dot(innovation(z, zhat, config.wrap_innovation))
    sigma = update_covariance(sigma, K, H, Q, config.covariance_update)

    mu[2] = normalize_angle(mu[2])
    return mu, sigma
