#!/usr/bin/env python3
"""
Velocity Motion Model and its Linearization

Prediction half of the EKF localization recursion (Probabilistic Robotics,
Table 7.2, lines 2-7) for a robot commanded with a forward velocity v and an
angular velocity ω held constant for Δt seconds.

Motion Model (circular arc, |ω| > ε):
    x' = x - (v/ω) sin θ + (v/ω) sin(θ + ωΔt)
    y' = y + (v/ω) cos θ - (v/ω) cos(θ + ωΔt)
    θ' = θ + ωΔt

Limiting Model (|ω| <= ε, L'Hôpital with ω → 0):
    x' = x + v cos θ Δt
    y' = y + v sin θ Δt
    θ' = θ + ωΔt      (or θ' = θ with straight_branch_turn disabled)

The arc form divides by ω and is undefined at ω = 0, so the straight-line
limits of the motion and of both Jacobians are used below the threshold.

Covariance Propagation:
    Σ' = G Σ Gᵀ + V M Vᵀ

where G = ∂g/∂(x, y, θ), V = ∂g/∂(v, ω) and M is the control-space noise.
"""

import numpy as np


def motion_noise(v, w, config):
    """
    Control-space noise covariance M for command (v, ω).

    Returns
    -------
    numpy.ndarray, shape (2, 2)
        diag((α1|v| + α2|ω|)², (α3|v| + α4|ω|)²)
    """
    a1, a2, a3, a4 = config.motion_alphas
    var_v = (a1 * abs(v) + a2 * abs(w)) ** 2
    var_w = (a3 * abs(v) + a4 * abs(w)) ** 2
    return np.diag([var_v, var_w])


def motion_jacobians(theta, v, w, dt, eps=1e-4, straight_turn=True):
    """
    Pose displacement and Jacobians of the velocity motion model.

    Parameters
    ----------
    theta : float
        Heading before the motion [rad].
    v, w : float
        Commanded linear [units/s] and angular [rad/s] velocity.
    dt : float
        Duration of the command [s].
    eps : float, optional
        |ω| at or below which the straight-line limit is used.
    straight_turn : bool, optional
        Keep the ωΔt heading change in the straight-line limit. When False
        the heading is held constant there (Δθ = 0).

    Returns
    -------
    delta : numpy.ndarray, shape (3,)
        Displacement [Δx, Δy, Δθ].
    G : numpy.ndarray, shape (3, 3)
        Jacobian w.r.t. the state.
    V : numpy.ndarray, shape (3, 2)
        Jacobian w.r.t. the control (v, ω).
    """
    G = np.identity(3)
    V = np.zeros((3, 2))
    s = np.sin(theta)
    c = np.cos(theta)

    if abs(w) > eps:
        r = v / w
        s_dt = np.sin(theta + w * dt)
        c_dt = np.cos(theta + w * dt)

        delta = np.array([-r * s + r * s_dt, r * c - r * c_dt, w * dt])

        G[0, 2] = -r * c + r * c_dt
        G[1, 2] = -r * s + r * s_dt

        V[0, 0] = (-s + s_dt) / w
        V[1, 0] = (c - c_dt) / w
        V[0, 1] = v * (s - s_dt) / (w * w) + v * c_dt * dt / w
        V[1, 1] = -v * (c - c_dt) / (w * w) + v * s_dt * dt / w
    else:
        delta = np.array([v * c * dt, v * s * dt, w * dt if straight_turn else 0.0])

        G[0, 2] = -v * s * dt
        G[1, 2] = v * c * dt

        V[0, 0] = c * dt
        V[1, 0] = s * dt
        V[0, 1] = -v * s * dt * dt * 0.5
        V[1, 1] = v * c * dt * dt * 0.5

    V[2, 1] = dt
    return delta, G, V


def predict_motion(mu, sigma, v, w, dt, config):
    """
    EKF prediction step.

    Pure function: the inputs are not modified and the heading of the
    returned mean is not wrapped.

    Parameters
    ----------
    mu : numpy.ndarray, shape (3,)
        Current mean [x, y, θ].
    sigma : numpy.ndarray, shape (3, 3)
        Current covariance.
    v, w, dt : float
        Command and its duration.
    config : FilterConfig
        Supplies the motion-noise coefficients and ε.

    Returns
    -------
    mu_bar : numpy.ndarray, shape (3,)
    sigma_bar : numpy.ndarray, shape (3, 3)
    """
    mu = np.asarray(mu, dtype=float)
    sigma = np.asarray(sigma, dtype=float)

    delta, G, V = motion_jacobians(mu[2], v, w, dt, config.eps, config.straight_branch_turn)
    M = motion_noise(v, w, config)

    mu_bar = mu + delta
    sigma_bar = G.dot(sigma).dot(G.T) + V.dot(M).dot(V.T)
    return mu_bar, sigma_bar


def sample_motion(pose, v, w, dt, config, rng):
    """
    Move ``pose`` with a command perturbed by the motion-noise model.

    Draws v̂ ~ N(v, M[0, 0]) and ω̂ ~ N(ω, M[1, 1]) and applies the exact
    motion for (v̂, ω̂). Used to generate ground truth in simulation.
    """
    M = motion_noise(v, w, config)
    v_noisy = v + rng.normal(0.0, np.sqrt(M[0, 0]))
    w_noisy = w + rng.normal(0.0, np.sqrt(M[1, 1]))
    delta, _, _ = motion_jacobians(
        pose[2], v_noisy, w_noisy, dt, config.eps, config.straight_branch_turn
    )
    return np.asarray(pose, dtype=float) + delta
