"""
Trajectory evaluation metrics for robot localization.

This module provides standardized metrics for evaluating localization
performance: Absolute Trajectory Error (ATE) on time-indexed pandas tables,
and the Normalized Estimation Error Squared (NEES) used to check that the
filter's covariance is consistent with its actual errors.
"""

import logging
from typing import Tuple

import numpy as np
import pandas as pd
from scipy import stats

from ekf_localization.utils.geometry import normalize_angle

# Configure module logger
logger = logging.getLogger(__name__)


def _validate_trajectory(df, name, required_cols=("x", "y")):
    if not isinstance(df, pd.DataFrame):
        raise ValueError(
            f"{name} must be a DataFrame, got {type(df).__name__}. "
            f"Did you call build_dataframes()?"
        )
    for col in required_cols:
        if col not in df.columns:
            raise ValueError(
                f"{name} missing required column '{col}'. "
                f"Available columns: {list(df.columns)}"
            )


def _align(estimated_states, groundtruth_data, cols=("x", "y")):
    aligned = estimated_states[list(cols)].join(
        groundtruth_data[list(cols)],
        how='inner',
        rsuffix='_gt'
    )
    if len(aligned) == 0:
        raise RuntimeError(
            "Timestamp alignment produced 0 matching frames! "
            f"Estimated time range: [{estimated_states.index.min()}, {estimated_states.index.max()}], "
            f"Ground truth time range: [{groundtruth_data.index.min()}, {groundtruth_data.index.max()}]"
        )
    return aligned


def compute_ate(
    estimated_states: pd.DataFrame,
    groundtruth_data: pd.DataFrame,
    verbose: bool = True
) -> float:
    """
    Compute Absolute Trajectory Error (ATE) using RMSE with timestamp matching.

    Parameters
    ----------
    estimated_states : pd.DataFrame
        Estimated trajectory with datetime index, columns ['x', 'y'] at minimum.
        Typically ``EKFLocalizer.build_dataframes()`` or ``SimulationResult.ekf``.
    groundtruth_data : pd.DataFrame
        Ground truth trajectory with datetime index, columns ['x', 'y'].
    verbose : bool, optional
        If True, log alignment statistics and error summary. Default: True.

    Returns
    -------
    float
        Root Mean Squared Error of the position, in world units.

    Raises
    ------
    ValueError
        If inputs are not DataFrames or missing required columns.
    RuntimeError
        If timestamp alignment produces no matching frames.

    Examples
    --------
    >>> from ekf_localization.simulation.runner import run_simulation
    >>>
    >>> result = run_simulation(steps=500, seed=1)
    >>> ate = compute_ate(result.ekf, result.groundtruth, verbose=False)
    """
    _validate_trajectory(estimated_states, "estimated_states")
    _validate_trajectory(groundtruth_data, "groundtruth_data")

    if verbose:
        logger.info("=" * 60)
        logger.info("ATE Computation: Input Validation")
        logger.info(f"✓ Estimated states: {len(estimated_states)} frames")
        logger.info(f"✓ Ground truth: {len(groundtruth_data)} frames")

    aligned = _align(estimated_states, groundtruth_data)

    if verbose:
        alignment_pct = len(aligned) / len(estimated_states) * 100
        logger.info(f"✓ Aligned frames: {len(aligned)} ({alignment_pct:.1f}% of estimates)")
        if alignment_pct < 90:
            logger.warning(
                f"⚠ Only {alignment_pct:.1f}% of frames aligned! "
                "Check that both trajectories share the simulation clock."
            )

    errors = np.sqrt(
        (aligned['x'] - aligned['x_gt']) ** 2 +
        (aligned['y'] - aligned['y_gt']) ** 2
    )
    ate = float(np.sqrt(np.mean(errors ** 2)))

    if verbose:
        logger.info(f"✓ Mean error: {np.mean(errors):.4f}")
        logger.info(f"✓ Max error: {np.max(errors):.4f}")
        logger.info(f"✓ ATE (RMSE): {ate:.4f}")
        logger.info("=" * 60)

    return ate


def compute_trajectory_stats(
    estimated_states: pd.DataFrame,
    groundtruth_data: pd.DataFrame
) -> dict:
    """
    Compute detailed trajectory error statistics.

    Returns
    -------
    dict
        'ate', 'mean_error', 'std_error', 'median_error', 'max_error',
        'min_error', 'heading_rmse' (when both tables carry 'theta'),
        'aligned_frames' and 'alignment_ratio'.
    """
    _validate_trajectory(estimated_states, "estimated_states")
    _validate_trajectory(groundtruth_data, "groundtruth_data")
    with_heading = "theta" in estimated_states.columns and "theta" in groundtruth_data.columns
    aligned = _align(
        estimated_states, groundtruth_data, ("x", "y", "theta") if with_heading else ("x", "y")
    )

    errors = np.sqrt(
        (aligned['x'] - aligned['x_gt']) ** 2 +
        (aligned['y'] - aligned['y_gt']) ** 2
    )

    result = {
        'ate': float(np.sqrt(np.mean(errors ** 2))),
        'mean_error': float(np.mean(errors)),
        'std_error': float(np.std(errors)),
        'median_error': float(np.median(errors)),
        'max_error': float(np.max(errors)),
        'min_error': float(np.min(errors)),
        'aligned_frames': len(aligned),
        'alignment_ratio': len(aligned) / len(estimated_states)
    }
    if with_heading:
        heading_errors = normalize_angle((aligned['theta'] - aligned['theta_gt']).to_numpy())
        result['heading_rmse'] = float(np.sqrt(np.mean(heading_errors ** 2)))
    return result


def compare_algorithms(
    algorithms: dict[str, Tuple[pd.DataFrame, pd.DataFrame]]
) -> pd.DataFrame:
    """
    Compare multiple localization estimates using ATE and other metrics.

    Parameters
    ----------
    algorithms : dict
        Mapping of algorithm names to (states_df, gt_df) tuples.
        Example: {'EKF': (result.ekf, result.groundtruth)}

    Returns
    -------
    pd.DataFrame
        Columns ['Algorithm', 'ATE', 'Mean Error', 'Std Error', 'Max Error',
        'Aligned Frames'], sorted by ATE (best first).
    """
    results = []

    for name, (states_df, gt_df) in algorithms.items():
        stats_ = compute_trajectory_stats(states_df, gt_df)
        results.append({
            'Algorithm': name,
            'ATE': stats_['ate'],
            'Mean Error': stats_['mean_error'],
            'Std Error': stats_['std_error'],
            'Max Error': stats_['max_error'],
            'Aligned Frames': stats_['aligned_frames']
        })

    df = pd.DataFrame(results)
    return df.sort_values('ATE').reset_index(drop=True)


def compute_nees(errors, covariances):
    """
    Normalized Estimation Error Squared for each time step.

    NEES_k = e_kᵀ Σ_k⁻¹ e_k. For a consistent filter its average over many
    steps is close to the state dimension.

    Parameters
    ----------
    errors : array_like, shape (T, n)
        Estimate minus truth; angular components should already be wrapped.
    covariances : array_like, shape (T, n, n)
        Filter covariance at each step.

    Returns
    -------
    numpy.ndarray, shape (T,)

    Raises
    ------
    ValueError
        If the shapes disagree.
    numpy.linalg.LinAlgError
        If a covariance is singular (e.g. at a perfectly known start pose).
    """
    errors = np.asarray(errors, dtype=float)
    covariances = np.asarray(covariances, dtype=float)
    if errors.ndim != 2 or covariances.shape != errors.shape + (errors.shape[1],):
        raise ValueError(
            f"expected errors (T, n) and covariances (T, n, n), "
            f"got {errors.shape} and {covariances.shape}"
        )
    solved = np.linalg.solve(covariances, errors[..., np.newaxis])[..., 0]
    return np.einsum('ti,ti->t', errors, solved)


def nees_bounds(dof, n_samples, confidence=0.95):
    """
    Two-sided acceptance interval for the average NEES over ``n_samples`` steps.

    The sum of ``n_samples`` NEES values is χ² with ``dof * n_samples``
    degrees of freedom; the returned bounds are divided by ``n_samples``.
    """
    alpha = 1.0 - confidence
    total_dof = dof * n_samples
    lower = stats.chi2.ppf(alpha / 2, total_dof) / n_samples
    upper = stats.chi2.ppf(1 - alpha / 2, total_dof) / n_samples
    return float(lower), float(upper)
