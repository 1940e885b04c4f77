"""
Regression test fixtures.
"""

import numpy as np
import pytest


@pytest.fixture
def doubling_data():
    """One predictor, no intercept, y = 2x exactly."""
    return np.array([1.0, 2.0, 3.0, 4.0]), np.array([2.0, 4.0, 6.0, 8.0])


@pytest.fixture
def noisy_data(rng):
    """Intercept plus three predictors of different scales, moderate noise."""
    n = 500
    X = np.column_stack([
        np.ones(n),
        rng.standard_normal(n),
        rng.uniform(0, 100, n),
        rng.standard_normal(n) * 0.01,
    ])
    beta = np.array([3.0, -1.5, 0.02, 40.0])
    y = X @ beta + rng.standard_normal(n)
    return X, y
