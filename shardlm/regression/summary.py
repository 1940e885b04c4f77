"""
Inference statistics for a fitted linear model.

LinearSummary reads only what LinearModel stores (coefficients, standard
errors, sigma, R², F, row count); it never touches the training data.
Every accessor is a pure function of the model, so calling them again,
from any thread, gives the same answer.
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING
import numpy as np
from numpy.typing import NDArray
from scipy import stats

from shardlm.core.compute.linalg import safe_divide
from shardlm.regression._format import sig_digits, round_digits

if TYPE_CHECKING:
    import pandas as pd
    from shardlm.regression.solution import LinearModel

_COLUMN_HEADERS = ("Estimate", "Std. Error", "t value", "Pr(>|t|)")


class LinearSummary:
    """
    R-style summary of a LinearModel.

    Numeric accessors:
        df_model, df_residual, adjusted_r_squared, t_values, p_values

    Report pieces:
        formula, coefficients_string(), rse_string(), r_squared_string(),
        f_statistic_string(), to_string() / str(summary)
    """

    def __init__(self, model: 'LinearModel'):
        self._model = model

    @property
    def model(self) -> 'LinearModel':
        return self._model

    # === Degrees of freedom ===

    @property
    def df_model(self) -> int:
        """Numerator degrees of freedom of F: p - 1."""
        return self._model.n_predictors - 1

    @property
    def df_residual(self) -> int:
        """Residual degrees of freedom: n - p (row count truncated to int)."""
        return int(self._model.n_rows) - self._model.n_predictors

    # === Fit statistics ===

    @property
    def r_squared(self) -> float:
        return self._model.r_squared

    @property
    def adjusted_r_squared(self) -> float:
        """1 - ((1 - R²)(n - 1)) / (n - p - 1)."""
        n = self._model.n_rows
        p = float(self._model.n_predictors)
        return 1.0 - safe_divide((1.0 - self._model.r_squared) * (n - 1.0), n - p - 1.0)

    @property
    def sigma(self) -> float:
        return self._model.sigma

    @property
    def f_statistic(self) -> float:
        return self._model.f_statistic

    # === Coefficients ===

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._model.coefficients

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        return self._model.standard_errors

    @property
    def t_values(self) -> NDArray[np.floating[Any]]:
        """Coefficient over standard error."""
        with np.errstate(divide='ignore', invalid='ignore'):
            return self._model.coefficients / self._model.standard_errors

    @property
    def p_values(self) -> NDArray[np.floating[Any]]:
        """
        Two-sided p-values, 2 * (1 - F_t(|t|; n - p)).

        Uses the survival function of Student's t, which equals 1 - cdf
        without the cancellation for large |t|. NaN when there are no
        residual degrees of freedom.
        """
        return 2.0 * stats.t.sf(np.abs(self.t_values), float(self.df_residual))

    # === Report ===

    @property
    def formula(self) -> str:
        """'response ~ x0 + x1 + ...' in coefficient order."""
        names = self._model.predictor_names
        if not names:
            raise ValueError("Model has no predictors; formula is undefined")
        return f"{self._model.response_name} ~ {' + '.join(names)}"

    def coefficients_string(self) -> str:
        """Fixed-width coefficient table, values to 6 significant digits."""
        lines = [_row("", *_COLUMN_HEADERS)]
        for name, coef, se, t, pv in zip(
            self._model.predictor_names,
            self.coefficients,
            self.standard_errors,
            self.t_values,
            self.p_values,
        ):
            lines.append(_row(
                name,
                *(str(sig_digits(v, 6)) for v in (coef, se, t, pv)),
            ))
        return "\n".join(lines)

    def rse_string(self) -> str:
        return (
            f"Residual standard error: {sig_digits(self.sigma, 6)} "
            f"on {self.df_residual} degrees of freedom"
        )

    def r_squared_string(self) -> str:
        return (
            f"Multiple R-Squared: {round_digits(self.r_squared, 4)}, "
            f"Adjusted R-Squared: {round_digits(self.adjusted_r_squared, 4)}"
        )

    def f_statistic_string(self) -> str:
        return (
            f"F-statistic: {sig_digits(self.f_statistic, 5)} "
            f"on {self.df_model} and {self.df_residual} DF"
        )

    def to_string(self) -> str:
        """Full report: model formula, coefficient table, fit statistics."""
        return "\n".join([
            "Model:",
            self.formula,
            "",
            "Coefficients:",
            self.coefficients_string(),
            "",
            self.rse_string(),
            "",
            self.r_squared_string(),
            "",
            self.f_statistic_string(),
        ])

    def coefficient_table(self) -> 'pd.DataFrame':
        """Unrounded coefficient table as a DataFrame indexed by predictor."""
        import pandas as pd
        return pd.DataFrame(
            {
                "Estimate": self.coefficients,
                "Std. Error": self.standard_errors,
                "t value": self.t_values,
                "Pr(>|t|)": self.p_values,
            },
            index=pd.Index(self._model.predictor_names, name="predictor"),
        )

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"LinearSummary({self.formula!r}, r_squared={self.r_squared:.4f})"


def _row(*cells: str) -> str:
    name, *values = cells
    return f"{name:<12} " + " ".join(f"{v:>12}" for v in values)
