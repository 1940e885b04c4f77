"""
Ordinary least squares over row-partitioned data.

Public API:
    fit(X, Y, ...) -> LinearModel
    predict(model, new_data) -> PredictionResult

fit() handles:
    - Precondition checks (schema, partitioning)
    - Design construction
    - Backend selection (single partition or tree reduction)
    - Result wrapping

Example:
    >>> from shardlm.regression import fit
    >>> model = fit(X_table, y_table)
    >>> print(model.coefficients)
    >>> print(model.summary())
    >>> model.predict(new_table).to_frame()
"""

from shardlm.regression.design import RegressionDesign
from shardlm.regression.solution import LinearModel, LinearParams
from shardlm.regression.summary import LinearSummary
from shardlm.regression.prediction import Prediction, PredictionResult
from shardlm.regression.solvers import fit, predict

__all__ = [
    "fit",
    "predict",
    "RegressionDesign",
    "LinearModel",
    "LinearParams",
    "LinearSummary",
    "Prediction",
    "PredictionResult",
]
