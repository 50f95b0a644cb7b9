import numpy as np
import pytest

from ekf_localization.utils.checks import (
    FilterStateError,
    is_valid_filter_state,
    validate_filter_state,
)

VALID_MU = np.array([1.0, 2.0, 0.5])
VALID_SIGMA = np.array([[2.0, 0.3, 0.0], [0.3, 1.0, 0.1], [0.0, 0.1, 0.2]])


def test_valid_state_passes():
    validate_filter_state(VALID_MU, VALID_SIGMA)
    assert is_valid_filter_state(VALID_MU, VALID_SIGMA)
    assert is_valid_filter_state(np.zeros(3), np.zeros((3, 3)))


@pytest.mark.parametrize(
    "mu, sigma, message",
    [
        (np.array([np.nan, 0.0, 0.0]), VALID_SIGMA, "mean is not finite"),
        (VALID_MU, np.full((3, 3), np.inf), "NaN or Inf"),
        (np.array([0.0, 0.0, 4.0]), VALID_SIGMA, "heading"),
        (VALID_MU, np.array([[1.0, 0.2, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]), "symmetric"),
        (VALID_MU, np.diag([1.0, -0.5, 1.0]), "positive semi-definite"),
        (np.zeros(2), VALID_SIGMA, "shape"),
        (VALID_MU, np.eye(2), "shape"),
    ],
)
def test_invalid_states_are_reported(mu, sigma, message):
    with pytest.raises(FilterStateError, match=message):
        validate_filter_state(mu, sigma)
    assert not is_valid_filter_state(mu, sigma)


def test_tolerance_allows_rounding_noise():
    sigma = VALID_SIGMA.copy()
    sigma[0, 1] += 1e-13
    validate_filter_state(VALID_MU, sigma)


def test_filter_state_error_is_value_error():
    assert issubclass(FilterStateError, ValueError)
