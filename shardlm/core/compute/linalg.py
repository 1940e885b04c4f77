"""
Dense linear algebra kernel.

Thin layer over numpy.linalg for the handful of operations the fitter
needs on small (p x p) Gram matrices and tall (n x p) partition blocks.
All functions are pure and operate on float64 arrays.

Conventions:
    - Singular or numerically singular X'X raises SingularMatrixError,
      never returns a pseudo-inverse
    - Scalar division follows IEEE semantics (NaN / Inf, no exception,
      no RuntimeWarning)
"""

from dataclasses import dataclass
from typing import Any
import numpy as np
from numpy.typing import NDArray

from shardlm.core.exceptions import NumericalError, SingularMatrixError
from shardlm.core.compute.tolerances import gram_condition_threshold


@dataclass(frozen=True)
class GramInverse:
    """
    Result of inverting X'X.

    Attributes:
        inverse: (X'X)^-1, p x p
        condition_number: 2-norm condition number of X'X
    """
    inverse: NDArray[np.floating[Any]]
    condition_number: float


def gram(X: NDArray[np.floating[Any]]) -> NDArray[np.floating[Any]]:
    """X'X for an (n x p) block."""
    return X.T @ X


def cross_product(
    X: NDArray[np.floating[Any]], y: NDArray[np.floating[Any]]
) -> NDArray[np.floating[Any]]:
    """X'y for an (n x p) block and (n,) response."""
    return X.T @ y


def condition_number(xtx: NDArray[np.floating[Any]]) -> float:
    """
    Condition number of a symmetric positive semi-definite matrix.

    Uses the eigenvalues of the symmetric matrix directly; returns inf when
    the smallest eigenvalue is not positive.
    """
    return _condition_from_eigenvalues(np.linalg.eigvalsh(xtx))


def invert_gram(
    xtx: NDArray[np.floating[Any]],
    threshold: float | None = None,
) -> GramInverse:
    """
    Invert X'X, refusing singular and near-singular matrices.

    Args:
        xtx: Symmetric p x p Gram matrix
        threshold: Largest condition number accepted. None means the
            float64 limit for a p x p matrix, see gram_condition_threshold()

    Returns:
        GramInverse with the inverse and the condition number

    Raises:
        NumericalError: If X'X has non-finite entries
        SingularMatrixError: If X'X is singular or its condition number
            exceeds `threshold` (collinear predictors, more predictors
            than rows)
    """
    p = xtx.shape[0]
    if threshold is None:
        threshold = gram_condition_threshold(p)
    if not np.all(np.isfinite(xtx)):
        raise NumericalError(
            "X'X contains non-finite values; the predictor data holds NaN or Inf"
        )

    eigenvalues = np.linalg.eigvalsh(xtx)
    largest = eigenvalues[-1]
    rank = int(np.sum(eigenvalues > largest / threshold)) if largest > 0 else 0
    cond = _condition_from_eigenvalues(eigenvalues)

    if cond > threshold:
        raise SingularMatrixError(
            f"X'X is singular or nearly singular: rank={rank}, expected={p}, "
            f"condition number={cond:.3e} (threshold {threshold:.1e}). "
            f"This indicates collinear predictors or more predictors than rows.",
            matrix_name="X'X",
            condition_number=cond,
            rank=rank,
            expected_rank=p,
        )

    try:
        inverse = np.linalg.inv(xtx)
    except np.linalg.LinAlgError as e:
        raise SingularMatrixError(
            f"X'X could not be inverted: {e}",
            matrix_name="X'X",
            condition_number=cond,
            rank=rank,
            expected_rank=p,
        ) from e

    return GramInverse(inverse=inverse, condition_number=cond)


def standard_errors(
    sigma_sq: float, xtx_inv: NDArray[np.floating[Any]]
) -> NDArray[np.floating[Any]]:
    """
    Coefficient standard errors: sqrt(sigma^2 * diag((X'X)^-1)).

    A NaN or negative sigma^2 (no residual degrees of freedom) gives NaN.
    """
    with np.errstate(invalid='ignore'):
        return np.sqrt(np.float64(sigma_sq) * np.diag(xtx_inv))


def safe_divide(numerator: float, denominator: float) -> float:
    """IEEE division: x/0 -> +-inf, 0/0 -> nan, never raises."""
    with np.errstate(divide='ignore', invalid='ignore'):
        return float(np.float64(numerator) / np.float64(denominator))


def _condition_from_eigenvalues(eigenvalues: NDArray[np.floating[Any]]) -> float:
    largest, smallest = eigenvalues[-1], eigenvalues[0]
    if largest <= 0 or smallest <= 0:
        return float('inf')
    return float(largest / smallest)
