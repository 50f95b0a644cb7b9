import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

from ekf_localization.config import FilterConfig, WorldConfig
from ekf_localization.localization import EKFLocalizer


@pytest.fixture
def config():
    return FilterConfig()


@pytest.fixture
def world():
    return WorldConfig()


@pytest.fixture
def uncertain_ekf(config):
    ekf = EKFLocalizer(config)
    ekf.set_state(0.0, 0.0, 0.0)
    ekf.set_covariance(np.diag([100.0, 100.0, 0.1]))
    return ekf
