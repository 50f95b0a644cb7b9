import numpy as np
import pandas as pd
import pytest

from ekf_localization.utils.data_utils import build_timeseries
from ekf_localization.utils.metrics import (
    compare_algorithms,
    compute_ate,
    compute_nees,
    compute_trajectory_stats,
    nees_bounds,
)


def _trajectory(offset=(0.0, 0.0), heading_offset=0.0, n=5):
    t = np.arange(n) * 0.1
    data = np.column_stack(
        [t, t * 10 + offset[0], np.zeros(n) + offset[1], np.zeros(n) + heading_offset]
    )
    return build_timeseries(data, cols=["stamp", "x", "y", "theta"])


def test_build_timeseries_index():
    df = _trajectory()
    assert isinstance(df.index, pd.DatetimeIndex)
    assert list(df.columns) == ["x", "y", "theta"]
    assert df.index[1] - df.index[0] == pd.Timedelta(milliseconds=100)


def test_ate_is_zero_for_identical_trajectories():
    assert compute_ate(_trajectory(), _trajectory(), verbose=False) == 0.0


def test_ate_of_constant_offset():
    assert compute_ate(_trajectory((3.0, 4.0)), _trajectory(), verbose=True) == pytest.approx(5.0)


def test_ate_rejects_arrays():
    with pytest.raises(ValueError, match="DataFrame"):
        compute_ate(np.zeros((5, 4)), _trajectory())


def test_ate_rejects_missing_columns():
    with pytest.raises(ValueError, match="missing required column 'y'"):
        compute_ate(_trajectory().drop(columns=["y"]), _trajectory())


def test_ate_requires_overlapping_timestamps():
    late = _trajectory()
    late.index = late.index + pd.Timedelta(hours=1)
    with pytest.raises(RuntimeError):
        compute_ate(late, _trajectory(), verbose=False)


def test_trajectory_stats_include_heading_error():
    stats = compute_trajectory_stats(_trajectory((3.0, 4.0), heading_offset=0.1), _trajectory())
    assert stats["ate"] == pytest.approx(5.0)
    assert stats["max_error"] == pytest.approx(5.0)
    assert stats["heading_rmse"] == pytest.approx(0.1)
    assert stats["aligned_frames"] == 5
    assert stats["alignment_ratio"] == 1.0


def test_heading_error_wraps_across_seam():
    near_pi = _trajectory(heading_offset=np.pi - 0.05)
    near_minus_pi = _trajectory(heading_offset=-np.pi + 0.05)
    stats = compute_trajectory_stats(near_pi, near_minus_pi)
    assert stats["heading_rmse"] == pytest.approx(0.1)


def test_compare_algorithms_sorts_by_ate():
    gt = _trajectory()
    table = compare_algorithms(
        {"worse": (_trajectory((10.0, 0.0)), gt), "better": (_trajectory((1.0, 0.0)), gt)}
    )
    assert list(table["Algorithm"]) == ["better", "worse"]
    assert table.loc[0, "ATE"] == pytest.approx(1.0)


def test_nees_with_identity_covariance_is_squared_norm():
    errors = np.array([[1.0, 2.0, 0.0], [0.0, 0.0, 3.0]])
    covariances = np.stack([np.eye(3), np.eye(3)])
    np.testing.assert_allclose(compute_nees(errors, covariances), [5.0, 9.0])


def test_nees_scales_with_covariance():
    errors = np.array([[2.0, 0.0, 0.0]])
    covariances = np.array([np.diag([4.0, 1.0, 1.0])])
    np.testing.assert_allclose(compute_nees(errors, covariances), [1.0])


def test_nees_rejects_mismatched_shapes():
    with pytest.raises(ValueError):
        compute_nees(np.zeros((4, 3)), np.zeros((4, 2, 2)))


def test_nees_bounds_bracket_state_dimension():
    lower, upper = nees_bounds(3, 100)
    assert lower < 3.0 < upper
    wide_lower, wide_upper = nees_bounds(3, 100, confidence=0.99)
    assert wide_lower < lower and wide_upper > upper
