"""
Tests for regression fit().

Tests the complete pipeline: precondition checks, design construction,
backend selection and the fitted model's statistics.
"""

import warnings
from dataclasses import FrozenInstanceError

import numpy as np
import pandas as pd
import pytest

from shardlm import PartitionedTable, fit
from shardlm.core.protocols import Backend
from shardlm.core.exceptions import (
    DimensionError,
    NumericalError,
    PartitionMismatchError,
    PreconditionError,
    SingularMatrixError,
)
from shardlm.regression import LinearModel
from shardlm.regression.backends.cpu import (
    CPUSingleBackend,
    CPUTreeBackend,
    _NormalEquationsBackend,
)


class TestFitBasic:
    """Basic fit() functionality tests."""

    def test_fit_from_tables(self, simple_regression_data, make_tables):
        X, y, _ = simple_regression_data
        model = fit(*make_tables(X, y))
        assert isinstance(model, LinearModel)
        assert model.coefficients.shape == (3,)
        assert model.predictor_names == ('x0', 'x1', 'x2')
        assert model.response_name == 'y'

    def test_fit_from_arrays(self, simple_regression_data):
        X, y, _ = simple_regression_data
        model = fit(X, y)
        assert model.predictor_names == ('x0', 'x1', 'x2')
        assert model.n_partitions == 1

    def test_fit_from_dataframes(self, rng):
        df = pd.DataFrame({'one': 1.0, 'a': rng.standard_normal(40)})
        response = pd.Series(2.0 + 3.0 * df['a'], name='target')
        model = fit(df, response)
        assert model.predictor_names == ('one', 'a')
        assert model.response_name == 'target'
        np.testing.assert_allclose(model.coefficients, [2.0, 3.0], atol=1e-10)

    def test_coefficients_close_to_truth(self, simple_regression_data):
        X, y, beta_true = simple_regression_data
        model = fit(X, y)
        np.testing.assert_allclose(model.coefficients, beta_true, atol=0.1)

    def test_coefficients_match_lstsq(self, noisy_data):
        X, y = noisy_data
        model = fit(X, y)
        expected, *_ = np.linalg.lstsq(X, y, rcond=None)
        np.testing.assert_allclose(model.coefficients, expected, rtol=1e-8)

    def test_row_count_is_float(self, simple_regression_data):
        X, y, _ = simple_regression_data
        model = fit(X, y)
        assert isinstance(model.n_rows, float)
        assert model.n_rows == 120.0


class TestFitStatistics:
    """Derived statistics of the fitted model."""

    def test_sse_matches_residuals(self, noisy_data):
        X, y = noisy_data
        model = fit(X, y)
        residuals = y - X @ model.coefficients
        assert model.sse == pytest.approx(residuals @ residuals, rel=1e-10)

    def test_r_squared_top_over_bottom(self, noisy_data):
        X, y = noisy_data
        model = fit(X, y)
        fitted = X @ model.coefficients
        top = np.sum((fitted - y.mean()) ** 2)
        bottom = np.sum((y - y.mean()) ** 2)
        assert model.r_squared == pytest.approx(top / bottom, rel=1e-10)

    def test_r_squared_equals_one_minus_sse_ratio_with_intercept(self, noisy_data):
        X, y = noisy_data
        model = fit(X, y)
        bottom = np.sum((y - y.mean()) ** 2)
        assert model.r_squared == pytest.approx(1.0 - model.sse / bottom, rel=1e-8)

    def test_f_statistic(self, noisy_data):
        X, y = noisy_data
        n, k = X.shape
        model = fit(X, y)
        bottom = np.sum((y - y.mean()) ** 2)
        expected = ((bottom - model.sse) / (k - 1)) / (model.sse / (n - k))
        assert model.f_statistic == pytest.approx(expected, rel=1e-10)

    def test_sigma(self, noisy_data):
        X, y = noisy_data
        n, k = X.shape
        model = fit(X, y)
        assert model.sigma == pytest.approx(np.sqrt(model.sse / (n - k)), rel=1e-12)

    def test_standard_errors_from_inverse_gram(self, noisy_data):
        X, y = noisy_data
        n, k = X.shape
        model = fit(X, y)
        sigma_sq = model.sse / (n - k)
        expected = np.sqrt(sigma_sq * np.diag(np.linalg.inv(X.T @ X)))
        np.testing.assert_allclose(model.standard_errors, expected, rtol=1e-8)

    def test_standard_errors_positive(self, simple_regression_data):
        X, y, _ = simple_regression_data
        se = fit(X, y).standard_errors
        assert np.all(se > 0)
        assert np.all(np.isfinite(se))


class TestConcreteScenarios:

    def test_doubling_single_partition(self, doubling_data, make_tables):
        x, y = doubling_data
        model = fit(*make_tables(x, y))
        np.testing.assert_allclose(model.coefficients, [2.0], rtol=1e-12)
        assert model.sse == pytest.approx(0.0, abs=1e-20)
        assert model.r_squared == pytest.approx(1.0)
        assert model.backend_name == 'cpu_single'

    def test_doubling_two_partitions(self, doubling_data, make_tables):
        x, y = doubling_data
        single = fit(*make_tables(x, y))
        multi = fit(*make_tables(x, y, n_partitions=2))
        assert multi.backend_name == 'cpu_tree'
        assert multi.n_partitions == 2
        np.testing.assert_allclose(multi.coefficients, single.coefficients, rtol=1e-12)
        assert multi.sse == pytest.approx(single.sse, abs=1e-20)
        assert multi.r_squared == pytest.approx(single.r_squared, rel=1e-12)

    def test_zero_noise_recovers_beta(self, rng, make_tables):
        X = np.column_stack([np.ones(60), rng.standard_normal((60, 3))])
        beta = np.array([0.5, -1.0, 2.0, 4.0])
        model = fit(*make_tables(X, X @ beta, n_partitions=5))
        np.testing.assert_allclose(model.coefficients, beta, rtol=1e-10)
        assert model.r_squared == pytest.approx(1.0, rel=1e-12)
        assert model.sse == pytest.approx(0.0, abs=1e-18)


class TestPreconditions:
    """Precondition failures are raised before any numeric work."""

    @pytest.fixture
    def no_solve(self, monkeypatch):
        def fail(self, design):
            raise AssertionError("backend reached despite invalid input")
        monkeypatch.setattr(CPUSingleBackend, 'solve', fail)
        monkeypatch.setattr(CPUTreeBackend, 'solve', fail)

    def test_non_numeric_predictor(self, no_solve):
        X = pd.DataFrame({'a': [1.0, 2.0, 3.0], 'city': ['x', 'y', 'z']})
        with pytest.raises(PreconditionError, match="city"):
            fit(X, np.array([1.0, 2.0, 3.0]))

    def test_response_two_columns(self, no_solve, rng):
        with pytest.raises(DimensionError, match="exactly one column"):
            fit(rng.standard_normal((10, 2)), rng.standard_normal((10, 2)))

    def test_row_count_mismatch(self, no_solve, rng):
        with pytest.raises(DimensionError, match="same number of rows"):
            fit(rng.standard_normal((10, 2)), rng.standard_normal(9))

    def test_partition_count_mismatch(self, no_solve, rng, make_tables):
        X_table, _ = make_tables(rng.standard_normal((12, 2)), rng.standard_normal(12), n_partitions=3)
        _, Y_table = make_tables(rng.standard_normal((12, 2)), rng.standard_normal(12), n_partitions=2)
        with pytest.raises(PartitionMismatchError, match="same number of partitions"):
            fit(X_table, Y_table)

    def test_partition_size_mismatch(self, no_solve, rng):
        X_table = PartitionedTable.from_arrays(rng.standard_normal((12, 2)), partition_sizes=[6, 6])
        Y_table = PartitionedTable.from_arrays(rng.standard_normal(12), columns=['y'], partition_sizes=[5, 7])
        with pytest.raises(PartitionMismatchError, match="Partition 0") as info:
            fit(X_table, Y_table)
        assert info.value.partition == 0

    @pytest.mark.parametrize("b", [0, 1])
    def test_bad_branching_factor(self, no_solve, simple_regression_data, b):
        X, y, _ = simple_regression_data
        with pytest.raises(ValueError, match="branching_factor"):
            fit(X, y, branching_factor=b)


class TestNumericalFailures:

    def test_collinear_single(self, collinear_data):
        X, y = collinear_data
        with pytest.raises(SingularMatrixError, match="collinear"):
            fit(X, y)

    def test_collinear_partitioned(self, collinear_data, make_tables):
        X, y = collinear_data
        with pytest.raises(SingularMatrixError):
            fit(*make_tables(X, y, n_partitions=3))

    def test_more_predictors_than_rows(self, rng):
        with pytest.raises(SingularMatrixError):
            fit(rng.standard_normal((3, 5)), rng.standard_normal(3))

    def test_nan_in_predictors(self):
        X = np.array([[1.0, 2.0], [np.nan, 1.0], [3.0, 0.5], [1.0, 1.0]])
        with pytest.raises(NumericalError, match="non-finite"):
            fit(X, np.ones(4))

    def test_ill_conditioned_warns(self, rng):
        X = np.column_stack([rng.standard_normal(200), 1e-5 * rng.standard_normal(200)])
        y = X @ [1.0, 1.0] + rng.standard_normal(200)
        model = fit(X, y)
        assert any('ill-conditioned' in w for w in model.warnings)

    def test_calendar_year_predictor(self, make_tables):
        # cond(X'X) ~ 2e12: badly scaled but full rank
        year = np.repeat(np.arange(2015.0, 2025.0), 20)
        X = np.column_stack([np.ones(len(year)), year])
        y = 3.0 + 0.5 * year
        for n_partitions in (1, 4):
            model = fit(*make_tables(X, y, n_partitions=n_partitions))
            assert model.info['condition_number'] > 1e12
            assert any('ill-conditioned' in w for w in model.warnings)
            np.testing.assert_allclose(model.coefficients, [3.0, 0.5], rtol=0.05)
            np.testing.assert_allclose(model.predict(X).value, y, rtol=1e-6)

    def test_well_conditioned_no_warnings(self, simple_regression_data):
        X, y, _ = simple_regression_data
        assert fit(X, y).warnings == ()


class TestArithmeticEdgeCases:
    """Degenerate divisions propagate NaN / Inf, without raising or warning."""

    def test_zero_variance_response(self, rng):
        X = np.column_stack([np.ones(10), rng.standard_normal(10)])
        y = np.full(10, 3.0)
        with warnings.catch_warnings():
            warnings.simplefilter('error')
            model = fit(X, y)
        assert not np.isfinite(model.r_squared)

    def test_no_residual_degrees_of_freedom(self, rng):
        X = rng.standard_normal((3, 3))
        with warnings.catch_warnings():
            warnings.simplefilter('error')
            model = fit(X, rng.standard_normal(3))
        assert not np.isfinite(model.sigma)
        assert not np.any(np.isfinite(model.standard_errors))

    def test_single_predictor_f_statistic_undefined(self, doubling_data):
        x, y = doubling_data
        model = fit(x, y)
        assert not np.isfinite(model.f_statistic)


class TestBackendSelection:
    """Test backend dispatch logic."""

    def test_auto_single(self, simple_regression_data, make_tables):
        X, y, _ = simple_regression_data
        model = fit(*make_tables(X, y))
        assert model.backend_name == 'cpu_single'
        assert model.info['tree_depth'] == 0

    def test_auto_tree(self, simple_regression_data, make_tables):
        X, y, _ = simple_regression_data
        model = fit(*make_tables(X, y, n_partitions=5), branching_factor=2)
        assert model.backend_name == 'cpu_tree'
        assert model.info['branching_factor'] == 2
        assert model.info['tree_depth'] == 3
        assert model.info['n_partitions'] == 5

    def test_tree_backend_on_one_partition(self, simple_regression_data, make_tables):
        X, y, _ = simple_regression_data
        tree = fit(*make_tables(X, y), backend='tree')
        single = fit(*make_tables(X, y), backend='single')
        assert tree.backend_name == 'cpu_tree'
        np.testing.assert_allclose(tree.coefficients, single.coefficients, rtol=1e-12)

    def test_single_backend_refuses_partitions(self, simple_regression_data, make_tables):
        X, y, _ = simple_regression_data
        with pytest.raises(PreconditionError, match="exactly one partition"):
            fit(*make_tables(X, y, n_partitions=2), backend='single')

    def test_invalid_backend_raises(self, simple_regression_data):
        X, y, _ = simple_regression_data
        with pytest.raises(ValueError, match="Unknown backend"):
            fit(X, y, backend='gpu')

    def test_timing_populated(self, simple_regression_data, make_tables):
        X, y, _ = simple_regression_data
        model = fit(*make_tables(X, y, n_partitions=3))
        assert model.timing is not None
        assert {'total_seconds', 'gram', 'inverse', 'residuals'} <= set(model.timing)

    def test_condition_number_reported(self, simple_regression_data):
        X, y, _ = simple_regression_data
        assert fit(X, y).info["condition_number"] >= 1.0

    def test_shared_base_is_abstract(self):
        with pytest.raises(TypeError):
            _NormalEquationsBackend()

    def test_backends_satisfy_protocol(self):
        assert isinstance(CPUSingleBackend(), Backend)
        assert isinstance(CPUTreeBackend(branching_factor=3), Backend)


class TestModelImmutability:

    def test_frozen_fields(self, simple_regression_data):
        X, y, _ = simple_regression_data
        model = fit(X, y)
        with pytest.raises(FrozenInstanceError):
            model.r_squared = 0.0

    def test_arrays_read_only(self, simple_regression_data):
        X, y, _ = simple_regression_data
        model = fit(X, y)
        with pytest.raises(ValueError):
            model.coefficients[0] = 0.0
        with pytest.raises(ValueError):
            model.standard_errors[0] = 0.0

    def test_info_read_only(self, simple_regression_data):
        X, y, _ = simple_regression_data
        model = fit(X, y)
        with pytest.raises(TypeError):
            model.info['method'] = 'other'

    def test_inconsistent_lengths_rejected(self):
        with pytest.raises(ValueError, match="Inconsistent model"):
            LinearModel(
                predictor_names=('a', 'b'),
                response_name='y',
                coefficients=np.array([1.0, 2.0]),
                standard_errors=np.array([0.1]),
                sigma=1.0,
                r_squared=0.5,
                f_statistic=1.0,
                n_rows=10.0,
                n_partitions=1,
            )

    def test_repr(self, doubling_data):
        x, y = doubling_data
        text = repr(fit(x, y))
        assert text.startswith("LinearModel(")
        assert "n_partitions=1" in text


class TestCustomTable:
    """Any object satisfying the Table protocol can be fitted."""

    class ListTable:
        def __init__(self, blocks, columns):
            self._blocks = [np.asarray(b, dtype=np.float64) for b in blocks]
            self._columns = tuple(columns)

        @property
        def columns(self):
            return self._columns

        @property
        def dtypes(self):
            return {c: np.dtype(np.float64) for c in self._columns}

        @property
        def n_rows(self):
            return sum(len(b) for b in self._blocks)

        @property
        def n_partitions(self):
            return len(self._blocks)

        @property
        def partition_sizes(self):
            return tuple(len(b) for b in self._blocks)

        def block(self, index, columns=None):
            block = self._blocks[index]
            if columns is None:
                return block
            return block[:, [self._columns.index(c) for c in columns]]

    def test_fit_and_predict(self, doubling_data):
        x, y = doubling_data
        X_table = self.ListTable([x[:1, None], x[1:, None]], ['x'])
        Y_table = self.ListTable([y[:1, None], y[1:, None]], ['y'])
        model = fit(X_table, Y_table)
        np.testing.assert_allclose(model.coefficients, [2.0], rtol=1e-12)
        np.testing.assert_allclose(model.predict(X_table).value, y, rtol=1e-12)
