"""
Data transformation and preprocessing utilities.

This module provides helper functions for converting recorded filter and
simulation histories into time-indexed pandas tables.
"""

import numpy as np
import pandas as pd


def build_timeseries(data, cols):
    """
    Convert numpy array to pandas DataFrame with datetime index.

    Parameters
    ----------
    data : ndarray
        Input data array where first column contains elapsed time in seconds.
    cols : list of str
        Column names for the DataFrame. First column should be 'stamp'.

    Returns
    -------
    pandas.DataFrame
        Time-indexed DataFrame with datetime index and remaining columns.

    Examples
    --------
    >>> import numpy as np
    >>> from ekf_localization.utils.data_utils import build_timeseries
    >>>
    >>> # Trajectory [t, x, y, theta]
    >>> data = np.array([
    ...     [0.0, 100.0, 100.0, 0.0],
    ...     [0.1, 110.0, 100.0, 0.0],
    ...     [0.2, 120.0, 100.0, 0.0]
    ... ])
    >>> df = build_timeseries(data, cols=['stamp', 'x', 'y', 'theta'])

    Notes
    -----
    - Elapsed seconds are interpreted as offsets from the Unix epoch, so
      trajectories sampled on the same simulation clock align exactly
    - Timestamps are rounded to the microsecond before conversion so that
      accumulated floating-point time steps still join across tables
    """
    data = np.asarray(data, dtype=float)
    timeseries = pd.DataFrame(data, columns=cols)
    timeseries["stamp"] = pd.to_datetime(timeseries["stamp"].round(6), unit="s")
    timeseries = timeseries.set_index("stamp")
    return timeseries
