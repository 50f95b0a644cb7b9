import numpy as np
import pytest

from ekf_localization.config import FilterConfig
from ekf_localization.localization.motion_model import (
    motion_jacobians,
    motion_noise,
    predict_motion,
    sample_motion,
)


def _move(state, v, w, dt, eps=1e-4):
    delta, _, _ = motion_jacobians(state[2], v, w, dt, eps)
    return state + delta


def test_motion_noise_uses_alpha_coefficients(config):
    M = motion_noise(100.0, -0.5, config)
    assert M.shape == (2, 2)
    assert M[0, 0] == pytest.approx((0.1 * 100.0) ** 2)
    assert M[1, 1] == pytest.approx((0.0001 * 100.0 + 0.1 * 0.5) ** 2)
    assert M[0, 1] == 0.0 and M[1, 0] == 0.0


def test_motion_noise_is_zero_at_rest(config):
    np.testing.assert_array_equal(motion_noise(0.0, 0.0, config), np.zeros((2, 2)))


def test_arc_motion_quarter_circle():
    # v / w = 100 -> radius 100, a quarter turn from heading 0
    delta, _, _ = motion_jacobians(0.0, 100.0 * np.pi / 2, np.pi / 2, 1.0)
    np.testing.assert_allclose(delta, [100.0, 100.0, np.pi / 2], atol=1e-9)


def test_straight_line_motion_at_zero_angular_velocity():
    delta, G, V = motion_jacobians(0.0, 100.0, 0.0, 0.5)
    assert delta[0] == 50.0
    assert delta[1] == 0.0
    assert delta[2] == 0.0
    assert G[1, 2] == pytest.approx(50.0)
    assert V[2, 1] == 0.5


def test_straight_line_turn_below_threshold_can_be_dropped():
    turned, _, V = motion_jacobians(0.0, 100.0, 5e-5, 1.0)
    held, _, V_held = motion_jacobians(0.0, 100.0, 5e-5, 1.0, straight_turn=False)
    assert turned[2] == 5e-5
    assert held[2] == 0.0
    np.testing.assert_array_equal(turned[:2], held[:2])
    np.testing.assert_array_equal(V, V_held)


@pytest.mark.parametrize("theta, v, w", [(0.3, 80.0, 0.7), (-2.0, 50.0, -1.2), (1.0, 100.0, 0.0)])
def test_state_jacobian_matches_finite_differences(theta, v, w):
    dt = 0.4
    state = np.array([10.0, -5.0, theta])
    _, G, _ = motion_jacobians(theta, v, w, dt)

    h = 1e-6
    numeric = np.zeros((3, 3))
    for i in range(3):
        step = np.zeros(3)
        step[i] = h
        numeric[:, i] = (_move(state + step, v, w, dt) - _move(state - step, v, w, dt)) / (2 * h)

    np.testing.assert_allclose(G, numeric, atol=1e-5)


@pytest.mark.parametrize("theta, v, w", [(0.3, 80.0, 0.7), (-2.0, 50.0, -1.2)])
def test_control_jacobian_matches_finite_differences(theta, v, w):
    dt = 0.4
    state = np.array([0.0, 0.0, theta])
    _, _, V = motion_jacobians(theta, v, w, dt)

    h = 1e-6
    numeric_v = (_move(state, v + h, w, dt) - _move(state, v - h, w, dt)) / (2 * h)
    numeric_w = (_move(state, v, w + h, dt) - _move(state, v, w - h, dt)) / (2 * h)

    np.testing.assert_allclose(V[:, 0], numeric_v, atol=1e-5)
    np.testing.assert_allclose(V[:, 1], numeric_w, atol=1e-4)


def test_predict_motion_does_not_mutate_inputs(config):
    mu = np.array([1.0, 2.0, 0.5])
    sigma = np.diag([1.0, 2.0, 0.1])
    mu_copy, sigma_copy = mu.copy(), sigma.copy()

    predict_motion(mu, sigma, 50.0, 0.3, 0.2, config)

    np.testing.assert_array_equal(mu, mu_copy)
    np.testing.assert_array_equal(sigma, sigma_copy)


@pytest.mark.parametrize("w", [1e-5, -1e-5])
def test_prediction_is_continuous_below_threshold(config, w):
    mu = np.array([10.0, 20.0, 0.4])
    sigma = np.diag([1.0, 1.0, 0.01])

    mu0, sigma0 = predict_motion(mu, sigma, 100.0, 0.0, 0.5, config)
    mu1, sigma1 = predict_motion(mu, sigma, 100.0, w, 0.5, config)

    np.testing.assert_allclose(mu1, mu0, atol=1e-4)
    np.testing.assert_allclose(sigma1, sigma0, rtol=1e-3, atol=1e-6)


@pytest.mark.parametrize("w", [2e-4, -2e-4])
def test_prediction_is_continuous_across_threshold(config, w):
    mu = np.array([10.0, 20.0, 0.4])
    sigma = np.diag([1.0, 1.0, 0.01])

    mu0, sigma0 = predict_motion(mu, sigma, 100.0, 0.0, 0.5, config)
    mu1, sigma1 = predict_motion(mu, sigma, 100.0, w, 0.5, config)

    assert np.all(np.isfinite(sigma1))
    np.testing.assert_allclose(mu1, mu0, atol=1e-2)
    np.testing.assert_allclose(sigma1, sigma0, rtol=1e-2, atol=1e-2)


def test_prediction_covariance_stays_symmetric(config):
    mu = np.array([0.0, 0.0, 1.0])
    sigma = np.array([[2.0, 0.3, 0.1], [0.3, 1.0, 0.05], [0.1, 0.05, 0.2]])
    _, sigma_bar = predict_motion(mu, sigma, 120.0, 0.8, 0.25, config)
    np.testing.assert_allclose(sigma_bar, sigma_bar.T, atol=1e-12)
    assert np.min(np.linalg.eigvalsh(sigma_bar)) > 0


def test_sample_motion_without_noise_is_exact():
    quiet = FilterConfig(alpha1=0.0, alpha2=0.0, alpha3=0.0, alpha4=0.0)
    rng = np.random.default_rng(0)
    pose = sample_motion(np.array([150.0, 300.0, 0.0]), 100.0, 0.0, 1.0, quiet, rng)
    np.testing.assert_allclose(pose, [250.0, 300.0, 0.0])


def test_sample_motion_is_reproducible(config):
    pose = np.array([0.0, 0.0, 0.0])
    a = sample_motion(pose, 100.0, 0.5, 0.1, config, np.random.default_rng(42))
    b = sample_motion(pose, 100.0, 0.5, 0.1, config, np.random.default_rng(42))
    np.testing.assert_array_equal(a, b)
