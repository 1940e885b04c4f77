"""
Partition reducer: sufficient statistics of OLS over row partitions.

Every aggregate here is a partial computed on one partition plus a pure
`combine(a, b) -> c` that adds two partials elementwise. Addition is
associative and commutative, so the tree shape chosen by tree_reduce
only changes floating-point summation order, never the result.

Two passes over the data are needed for the error sums of squares:

    pass 1: sum(y) per partition -> global mean of y
    pass 2: (sse, top, bottom) per partition, all using that one mean

Pass 2 cannot start before pass 1 completes, since every partition
needs the same global mean.

Per-partition functions take the design and a partition index (rather
than materialized blocks) so that blocks are built inside the worker.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from functools import partial
from typing import Any
import numpy as np
from numpy.typing import NDArray

from shardlm.core.compute.linalg import gram, cross_product, safe_divide
from shardlm.core.compute.reduce import DEFAULT_BRANCHING_FACTOR, map_partitions, tree_reduce
from shardlm.core.validation import check_same_partition_count, check_aligned_partitions
from shardlm.regression.design import RegressionDesign

log = logging.getLogger("shardlm.regression.reducer")


# === Partial results ===

@dataclass(frozen=True)
class GramPartial:
    """X'X and X'y of some set of rows, and how many rows that was."""
    xtx: NDArray[np.floating[Any]]
    xty: NDArray[np.floating[Any]]
    n: int


@dataclass(frozen=True)
class ResponseSum:
    """Sum of y over some set of rows."""
    total: float
    n: int


@dataclass(frozen=True)
class ResidualPartial:
    """
    Error sums of squares around a fixed global mean of y.

    Attributes:
        sse: sum((y - fitted)^2)
        top: sum((fitted - y_mean)^2)
        bottom: sum((y - y_mean)^2)
    """
    sse: float
    top: float
    bottom: float


def combine_gram(a: GramPartial, b: GramPartial) -> GramPartial:
    return GramPartial(xtx=a.xtx + b.xtx, xty=a.xty + b.xty, n=a.n + b.n)


def combine_response_sums(a: ResponseSum, b: ResponseSum) -> ResponseSum:
    return ResponseSum(total=a.total + b.total, n=a.n + b.n)


def combine_residuals(a: ResidualPartial, b: ResidualPartial) -> ResidualPartial:
    return ResidualPartial(sse=a.sse + b.sse, top=a.top + b.top, bottom=a.bottom + b.bottom)


# === Per-partition statistics ===

def partition_gram(X: NDArray[np.floating[Any]], y: NDArray[np.floating[Any]]) -> GramPartial:
    """X_i'X_i and X_i'y_i of one block."""
    return GramPartial(xtx=gram(X), xty=cross_product(X, y), n=len(y))


def partition_response_sum(y: NDArray[np.floating[Any]]) -> ResponseSum:
    return ResponseSum(total=float(np.sum(y)), n=len(y))


def partition_residuals(
    X: NDArray[np.floating[Any]],
    y: NDArray[np.floating[Any]],
    coefficients: NDArray[np.floating[Any]],
    y_mean: float,
) -> ResidualPartial:
    """Residual, explained and total sums of squares of one block."""
    fitted = X @ coefficients
    err = y - fitted
    fitted_dev = fitted - y_mean
    y_dev = y - y_mean
    return ResidualPartial(
        sse=float(err @ err),
        top=float(fitted_dev @ fitted_dev),
        bottom=float(y_dev @ y_dev),
    )


# === Reductions over a design ===

def reduce_gram(
    design: RegressionDesign,
    branching_factor: int = DEFAULT_BRANCHING_FACTOR,
    executor: Executor | None = None,
) -> GramPartial:
    """
    Global X'X and X'y via map + tree reduce.

    Raises:
        PartitionMismatchError: If X and Y partitions are not row-aligned
    """
    _check_alignment(design)
    partials = map_partitions(
        partial(_gram_of, design), range(design.n_partitions), executor
    )
    log.debug("reduce_gram: %d partition partials", len(partials))
    return tree_reduce(partials, combine_gram, branching_factor, executor)


def global_response_mean(
    design: RegressionDesign,
    branching_factor: int = DEFAULT_BRANCHING_FACTOR,
    executor: Executor | None = None,
) -> float:
    """Mean of y over all partitions (pass 1)."""
    _check_alignment(design)
    sums = map_partitions(
        partial(_response_sum_of, design), range(design.n_partitions), executor
    )
    total = tree_reduce(sums, combine_response_sums, branching_factor, executor)
    return safe_divide(total.total, total.n)


def reduce_residuals(
    design: RegressionDesign,
    coefficients: NDArray[np.floating[Any]],
    y_mean: float,
    branching_factor: int = DEFAULT_BRANCHING_FACTOR,
    executor: Executor | None = None,
) -> ResidualPartial:
    """Global (sse, top, bottom) around `y_mean` (pass 2)."""
    _check_alignment(design)
    partials = map_partitions(
        partial(_residuals_of, design, coefficients, y_mean),
        range(design.n_partitions),
        executor,
    )
    return tree_reduce(partials, combine_residuals, branching_factor, executor)


def _check_alignment(design: RegressionDesign) -> None:
    check_same_partition_count(design.X, design.Y, names=('X', 'Y'))
    check_aligned_partitions(design.X, design.Y, names=('X', 'Y'))


def _gram_of(design: RegressionDesign, index: int) -> GramPartial:
    X, y = design.partition(index)
    return partition_gram(X, y)


def _response_sum_of(design: RegressionDesign, index: int) -> ResponseSum:
    return partition_response_sum(design.Y.block(index).ravel())


def _residuals_of(
    design: RegressionDesign,
    coefficients: NDArray[np.floating[Any]],
    y_mean: float,
    index: int,
) -> ResidualPartial:
    X, y = design.partition(index)
    return partition_residuals(X, y, coefficients, y_mean)
