"""
Exception hierarchy for shardlm.

All exceptions inherit from ShardLMError so callers can catch any
library-specific failure in one place.

Two families matter to callers:
    - PreconditionError: the inputs are malformed (shape, schema,
      partitioning). Raised before any numeric work starts.
    - NumericalError: the inputs are well formed but the computation
      cannot proceed (singular Gram matrix).

Messages carry the actual values that violated the condition.
"""


class ShardLMError(Exception):
    """Base exception for all shardlm errors."""
    pass


class PreconditionError(ShardLMError):
    """
    Input precondition violated.

    Raised when tables handed to fit() or predict() fail a schema or
    shape check: non-numeric predictors, a response with more than one
    column, mismatched partitioning, missing predictor columns.
    """
    pass


class DimensionError(PreconditionError):
    """
    Table dimensions are incorrect or inconsistent.

    Raised when row counts, column counts or array ranks don't match
    what the operation requires.
    """
    pass


class PartitionMismatchError(DimensionError):
    """
    Predictor and response tables are partitioned differently.

    Attributes:
        partition: Index of the first offending partition, or None when
            the partition counts themselves differ
        sizes: The pair of sizes (or counts) that disagree
    """

    def __init__(
        self,
        message: str,
        partition: int | None = None,
        sizes: tuple[int, int] | None = None,
    ):
        super().__init__(message)
        self.partition = partition
        self.sizes = sizes


class MissingPredictorError(PreconditionError):
    """
    Prediction data lacks columns the model was fitted on.

    Attributes:
        missing: Names of the absent predictors, in model order
    """

    def __init__(self, message: str, missing: tuple[str, ...] = ()):
        super().__init__(message)
        self.missing = tuple(missing)


class NumericalError(ShardLMError):
    """
    Numerical computation failed.

    Base class for errors arising from numerical issues during computation.
    """
    pass


class SingularMatrixError(NumericalError):
    """
    Matrix is singular or nearly singular.

    Raised when X'X cannot be inverted reliably: collinear predictors,
    more predictors than rows, or a condition number past the threshold.

    Attributes:
        matrix_name: Name/description of the problematic matrix
        condition_number: Estimated condition number, if available
        rank: Numerical rank, if computed
        expected_rank: Expected rank (number of predictors)
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank
