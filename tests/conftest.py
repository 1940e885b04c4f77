"""
pytest configuration and shared fixtures.
"""

import pytest
import numpy as np

from shardlm.core.table import PartitionedTable


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def simple_regression_data(rng):
    """Intercept plus two predictors, low noise."""
    n = 120
    X = np.column_stack([np.ones(n), rng.standard_normal((n, 2))])
    beta_true = np.array([1.0, -2.0, 0.5])
    y = X @ beta_true + rng.standard_normal(n) * 0.1
    return X, y, beta_true


@pytest.fixture
def collinear_data():
    """Exactly collinear integer predictors: x3 = x1 + x2."""
    x1 = np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0])
    x2 = np.array([2.0, 1.0, 0.0, 3.0, 1.0, 4.0, 2.0, 5.0])
    X = np.column_stack([x1, x2, x1 + x2])
    y = np.array([1.0, 3.0, 2.0, 5.0, 4.0, 6.0, 5.0, 8.0])
    return X, y


@pytest.fixture
def make_tables():
    """Factory: (X, y, partitioning) -> (X table, Y table) with named columns."""
    def _make(X, y, *, n_partitions=None, partition_sizes=None, names=None):
        X = np.asarray(X, dtype=np.float64)
        if X.ndim == 1:
            X = X.reshape(-1, 1)
        if names is None:
            names = [f"x{j}" for j in range(X.shape[1])]
        X_table = PartitionedTable.from_arrays(
            X, columns=names, n_partitions=n_partitions, partition_sizes=partition_sizes,
        )
        Y_table = PartitionedTable.from_arrays(
            y, columns=['y'], n_partitions=n_partitions, partition_sizes=partition_sizes,
        )
        return X_table, Y_table
    return _make
