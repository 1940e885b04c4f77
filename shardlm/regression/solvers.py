"""
Solver dispatch for regression.

This module provides the fit() and predict() functions (public API) and
backend selection.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Any, Literal

from shardlm.core.compute.reduce import DEFAULT_BRANCHING_FACTOR
from shardlm.core.validation import check_branching_factor
from shardlm.regression.design import RegressionDesign
from shardlm.regression.solution import LinearModel
from shardlm.regression.prediction import PredictionResult, predict as _predict
from shardlm.regression.backends.cpu import CPUSingleBackend, CPUTreeBackend


# Type alias for backend selection
BackendChoice = Literal['auto', 'single', 'tree']

log = logging.getLogger("shardlm.regression")


def fit(
    X: Any,
    Y: Any,
    *,
    backend: BackendChoice = 'auto',
    branching_factor: int = DEFAULT_BRANCHING_FACTOR,
    executor: Executor | None = None,
) -> LinearModel:
    """
    Fit an ordinary least squares model over partitioned data.

    Solves min_β ||y - Xβ||² through the normal equations. No intercept
    is added; include a column of ones in X for one.

    All preconditions are checked before any numeric work. Then, with one
    partition, X'X and X'y are formed directly; with several, they are
    formed per partition and tree-reduced. Both give the same model.

    Args:
        X: Predictor table (PartitionedTable or any Table), DataFrame or
            array-like. Every column must be numeric.
        Y: Response table with exactly one column, partitioned like X.
        backend: Computational backend to use:
            - 'auto': 'single' for one partition, 'tree' otherwise
            - 'single': Direct normal equations, one partition only
            - 'tree': Per-partition products combined by tree reduction
        branching_factor: Fan-in of each tree-reduce level, >= 2
        executor: Optional concurrent.futures executor for per-partition
            work. None runs everything in the calling thread.

    Returns:
        LinearModel with coefficients, standard errors, R², F and the
        predict() / summary() methods

    Raises:
        PreconditionError: Non-numeric predictor, response not one column
        DimensionError: X and Y row counts differ
        PartitionMismatchError: X and Y partitioned differently
        SingularMatrixError: X'X singular or nearly singular
        ValueError: Unknown backend or branching_factor < 2

    Example:
        >>> import numpy as np
        >>> from shardlm import PartitionedTable, fit
        >>>
        >>> X = np.column_stack([np.ones(1000), np.random.randn(1000, 2)])
        >>> y = X @ [1, 2, 3] + np.random.randn(1000) * 0.1
        >>> model = fit(
        ...     PartitionedTable.from_arrays(X, columns=['one', 'a', 'b'], n_partitions=8),
        ...     PartitionedTable.from_arrays(y, columns=['y'], n_partitions=8),
        ... )
        >>> print(model.summary())
    """
    # === Configuration ===
    check_branching_factor(branching_factor)

    # === Construct Design ===
    # This is the boundary - validate here, trust everywhere else
    design = RegressionDesign.build(X, Y)

    # === Select Backend ===
    backend_impl = _get_backend(backend, design, branching_factor, executor)
    log.debug(
        "fit: %d rows, %d predictors, %d partitions -> %s",
        design.n, design.p, design.n_partitions, backend_impl.name,
    )

    # === Solve ===
    result = backend_impl.solve(design)

    # === Wrap and Return ===
    return LinearModel.from_result(result, design)


def predict(
    model: LinearModel,
    new_data: Any,
    *,
    executor: Executor | None = None,
) -> PredictionResult:
    """
    Predict the response for each row of `new_data`.

    Same as model.predict(new_data).

    Raises:
        MissingPredictorError: If a model predictor is absent from new_data
    """
    return _predict(model, new_data, executor=executor)


def _get_backend(
    choice: BackendChoice,
    design: RegressionDesign,
    branching_factor: int,
    executor: Executor | None,
):
    """
    Select and instantiate the appropriate backend.

    Raises:
        ValueError: If unknown backend specified
    """
    if choice == 'auto':
        if design.n_partitions == 1:
            return CPUSingleBackend()
        return CPUTreeBackend(branching_factor=branching_factor, executor=executor)

    elif choice == 'single':
        return CPUSingleBackend()

    elif choice == 'tree':
        return CPUTreeBackend(branching_factor=branching_factor, executor=executor)

    else:
        raise ValueError(f"Unknown backend: {choice!r}")
