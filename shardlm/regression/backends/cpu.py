"""
CPU backends for linear regression via the normal equations.

Both backends compute the same sufficient statistics, X'X, X'y and the
(sse, top, bottom) triple, and derive everything else from them in
_NormalEquationsBackend.solve(). They differ only in how the statistics
are gathered:

    CPUSingleBackend: one partition, products formed directly on the block
    CPUTreeBackend:   per-partition partials combined by tree reduction

Given the same rows, both return the same numbers up to summation order.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Any
import numpy as np
from numpy.typing import NDArray

from shardlm.core.exceptions import PreconditionError
from shardlm.core.result import Result
from shardlm.core.compute.linalg import invert_gram, safe_divide
from shardlm.core.compute.reduce import DEFAULT_BRANCHING_FACTOR, tree_depth
from shardlm.core.compute.timing import Timer
from shardlm.core.compute.tolerances import GRAM_WARNING_THRESHOLD
from shardlm.core.validation import check_branching_factor
from shardlm.regression.design import RegressionDesign
from shardlm.regression.solution import LinearParams
from shardlm.regression._reducer import (
    GramPartial,
    ResidualPartial,
    partition_gram,
    partition_response_sum,
    partition_residuals,
    reduce_gram,
    global_response_mean,
    reduce_residuals,
)

log = logging.getLogger("shardlm.regression.backends")


class _NormalEquationsBackend(ABC):
    """
    Shared solve() over "sufficient statistics of a partitioned design".

    Subclasses provide name, _gram() and _residuals().
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend identifier."""

    @abstractmethod
    def _gram(self, design: RegressionDesign) -> GramPartial:
        """Global X'X, X'y and row count."""

    @abstractmethod
    def _residuals(
        self, design: RegressionDesign, coefficients: NDArray[np.floating[Any]]
    ) -> ResidualPartial:
        """Global (sse, top, bottom) for `coefficients`."""

    def _info(self, design: RegressionDesign) -> dict[str, Any]:
        return {}

    def solve(self, design: RegressionDesign) -> Result[LinearParams]:
        """
        Solve OLS via the normal equations.

        Algorithm:
            1. Gather X'X and X'y
            2. β = (X'X)⁻¹ X'y, keeping (X'X)⁻¹
            3. Gather sse, top = Σ(ŷ-ȳ)², bottom = Σ(y-ȳ)²
            4. R² = top/bottom, F = ((bottom-sse)/(p-1)) / (sse/(n-p))

        Raises:
            SingularMatrixError: If X'X is singular or nearly so
        """
        timer = Timer()
        timer.start()
        warnings: list[str] = []

        with timer.section('gram'):
            stats = self._gram(design)

        with timer.section('inverse'):
            inverted = invert_gram(stats.xtx)
            coefficients = inverted.inverse @ stats.xty

        with timer.section('residuals'):
            errors = self._residuals(design, coefficients)

        n = float(design.n)
        p = float(design.p)
        r_squared = safe_divide(errors.top, errors.bottom)
        f_statistic = safe_divide(
            safe_divide(errors.bottom - errors.sse, p - 1.0),
            safe_divide(errors.sse, n - p),
        )

        timer.stop()

        if inverted.condition_number > GRAM_WARNING_THRESHOLD:
            warnings.append(
                f"X'X is ill-conditioned (condition number {inverted.condition_number:.2e}); "
                f"coefficients may be inaccurate"
            )

        log.debug(
            "%s: n=%d p=%d partitions=%d cond=%.3e",
            self.name, design.n, design.p, design.n_partitions, inverted.condition_number,
        )

        params = LinearParams(
            coefficients=coefficients,
            xtx_inv=inverted.inverse,
            sse=errors.sse,
            r_squared=r_squared,
            f_statistic=f_statistic,
        )

        info: dict[str, Any] = {
            'method': 'normal_equations',
            'n_partitions': design.n_partitions,
            'condition_number': inverted.condition_number,
        }
        info.update(self._info(design))

        return Result(
            params=params,
            info=info,
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings),
        )


class CPUSingleBackend(_NormalEquationsBackend):
    """
    Single-partition backend.

    Works on the one in-memory block; no map, no tree.
    """

    @property
    def name(self) -> str:
        return 'cpu_single'

    def _block(self, design: RegressionDesign):
        if design.n_partitions != 1:
            raise PreconditionError(
                f"{self.name} backend requires exactly one partition, "
                f"got {design.n_partitions}"
            )
        return design.partition(0)

    def _gram(self, design: RegressionDesign) -> GramPartial:
        X, y = self._block(design)
        return partition_gram(X, y)

    def _residuals(
        self, design: RegressionDesign, coefficients: NDArray[np.floating[Any]]
    ) -> ResidualPartial:
        X, y = self._block(design)
        sums = partition_response_sum(y)
        y_mean = safe_divide(sums.total, sums.n)
        return partition_residuals(X, y, coefficients, y_mean)

    def _info(self, design: RegressionDesign) -> dict[str, Any]:
        return {'tree_depth': 0}


class CPUTreeBackend(_NormalEquationsBackend):
    """
    Multi-partition backend.

    Per-partition products are mapped (on `executor` if given) and
    combined by a tree with fan-in `branching_factor`. The response mean
    is reduced first and then shared by every partition's residual pass.
    """

    def __init__(
        self,
        branching_factor: int = DEFAULT_BRANCHING_FACTOR,
        executor: Executor | None = None,
    ):
        check_branching_factor(branching_factor)
        self._branching_factor = branching_factor
        self._executor = executor

    @property
    def name(self) -> str:
        return 'cpu_tree'

    @property
    def branching_factor(self) -> int:
        return self._branching_factor

    def _gram(self, design: RegressionDesign) -> GramPartial:
        return reduce_gram(design, self._branching_factor, self._executor)

    def _residuals(
        self, design: RegressionDesign, coefficients: NDArray[np.floating[Any]]
    ) -> ResidualPartial:
        y_mean = global_response_mean(design, self._branching_factor, self._executor)
        return reduce_residuals(
            design, coefficients, y_mean, self._branching_factor, self._executor
        )

    def _info(self, design: RegressionDesign) -> dict[str, Any]:
        return {
            'branching_factor': self._branching_factor,
            'tree_depth': tree_depth(design.n_partitions, self._branching_factor),
        }
