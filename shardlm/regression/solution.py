"""
Regression solution types.

LinearParams is the payload a backend computes. LinearModel is the
fitted model handed to users: built once per fit(), never modified, and
safe to share between threads calling predict() and summary().
"""

from __future__ import annotations

from concurrent.futures import Executor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, TYPE_CHECKING
import numpy as np
from numpy.typing import NDArray

from shardlm.core.compute.linalg import safe_divide, standard_errors
from shardlm.core.result import Result

if TYPE_CHECKING:
    from shardlm.regression.design import RegressionDesign
    from shardlm.regression.prediction import PredictionResult
    from shardlm.regression.summary import LinearSummary


@dataclass(frozen=True, eq=False)
class LinearParams:
    """
    Parameter payload for linear regression.

    Produced by a backend, consumed by LinearModel.from_result() and then
    dropped. xtx_inv is kept from the coefficient step so standard errors
    don't invert X'X a second time.
    """
    coefficients: NDArray[np.floating[Any]]
    xtx_inv: NDArray[np.floating[Any]]
    sse: float
    r_squared: float
    f_statistic: float


@dataclass(frozen=True, eq=False)
class LinearModel:
    """
    Fitted ordinary least squares model.

    Attributes:
        predictor_names: Predictor columns, in coefficient order
        response_name: Response column
        coefficients: Estimated coefficients (p,), read-only
        standard_errors: Coefficient standard errors (p,), read-only
        sigma: Residual standard error
        r_squared: Explained over total sum of squares
        f_statistic: Overall F statistic
        n_rows: Number of observations, as a float
        n_partitions: Partitions the training data was split into
        sse: Residual sum of squares
        backend_name: Backend that produced the fit
        info: Backend metadata (method, tree depth, condition number)
        timing: Stage timings in seconds, if measured
        warnings: Non-fatal issues found while fitting
    """
    predictor_names: tuple[str, ...]
    response_name: str
    coefficients: NDArray[np.floating[Any]]
    standard_errors: NDArray[np.floating[Any]]
    sigma: float
    r_squared: float
    f_statistic: float
    n_rows: float
    n_partitions: int
    sse: float = float('nan')
    backend_name: str = ''
    info: Mapping[str, Any] = field(default_factory=dict, repr=False)
    timing: Mapping[str, float] | None = field(default=None, repr=False)
    warnings: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        coefficients = np.array(self.coefficients, dtype=np.float64).ravel()
        ses = np.array(self.standard_errors, dtype=np.float64).ravel()
        names = tuple(self.predictor_names)

        if not (len(coefficients) == len(names) == len(ses)):
            raise ValueError(
                f"Inconsistent model: {len(names)} predictor names, "
                f"{len(coefficients)} coefficients, {len(ses)} standard errors"
            )
        if self.n_partitions < 1:
            raise ValueError(f"n_partitions must be >= 1, got {self.n_partitions}")

        coefficients.setflags(write=False)
        ses.setflags(write=False)
        object.__setattr__(self, 'predictor_names', names)
        object.__setattr__(self, 'coefficients', coefficients)
        object.__setattr__(self, 'standard_errors', ses)
        object.__setattr__(self, 'n_rows', float(self.n_rows))
        object.__setattr__(self, 'info', MappingProxyType(dict(self.info)))
        if self.timing is not None:
            object.__setattr__(self, 'timing', MappingProxyType(dict(self.timing)))
        object.__setattr__(self, 'warnings', tuple(self.warnings))

    @classmethod
    def from_result(
        cls, result: Result[LinearParams], design: 'RegressionDesign'
    ) -> LinearModel:
        """
        Build the fitted model from a backend result.

        Residual variance is sse / (n - p); standard errors are
        sqrt(sigma^2 * diag((X'X)^-1)). No residual degrees of freedom
        gives NaN / Inf rather than an error.
        """
        params = result.params
        n_rows = float(design.n)
        sigma_sq = safe_divide(params.sse, n_rows - len(params.coefficients))

        return cls(
            predictor_names=design.predictor_names,
            response_name=design.response_name,
            coefficients=params.coefficients,
            standard_errors=standard_errors(sigma_sq, params.xtx_inv),
            sigma=float(np.sqrt(sigma_sq)) if sigma_sq >= 0 else float('nan'),
            r_squared=params.r_squared,
            f_statistic=params.f_statistic,
            n_rows=n_rows,
            n_partitions=design.n_partitions,
            sse=params.sse,
            backend_name=result.backend_name,
            info=result.info,
            timing=result.timing,
            warnings=result.warnings,
        )

    @property
    def n_predictors(self) -> int:
        return len(self.predictor_names)

    def predict(
        self, new_data: Any, *, executor: Executor | None = None
    ) -> 'PredictionResult':
        """
        Predicted response for each row of `new_data`.

        Args:
            new_data: Table or DataFrame holding every predictor column.
                Extra columns are ignored.
            executor: Optional executor for per-partition products

        Raises:
            MissingPredictorError: If a predictor column is absent
        """
        from shardlm.regression.prediction import predict
        return predict(self, new_data, executor=executor)

    def summary(self) -> 'LinearSummary':
        """Inference statistics and R-style report for this model."""
        from shardlm.regression.summary import LinearSummary
        return LinearSummary(self)

    def __repr__(self) -> str:
        return (
            f"LinearModel(formula={self.response_name!r} ~ {list(self.predictor_names)}, "
            f"n_rows={self.n_rows:g}, n_partitions={self.n_partitions}, "
            f"r_squared={self.r_squared:.4f})"
        )
