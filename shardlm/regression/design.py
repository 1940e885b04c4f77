"""
Regression Design.

Design pairs a predictor table with a response table and checks, once,
that the pair can be fitted: numeric predictors, a single response
column, identical partitioning. Everything downstream trusts it.

Tables only provide partitions of rows. Design knows those rows are
going into a regression and hands out aligned (X_i, y_i) blocks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Sequence
import numpy as np
from numpy.typing import ArrayLike, NDArray

from shardlm.core.protocols import Table
from shardlm.core.table import as_table
from shardlm.core.validation import (
    check_has_columns,
    check_numeric_columns,
    check_single_column,
    check_same_partition_count,
    check_same_row_count,
    check_aligned_partitions,
)


@dataclass(frozen=True)
class RegressionDesign:
    """
    Validated predictor/response pair. Immutable after construction.

    Construction:
        RegressionDesign.build(X_table, Y_table)                  # two tables
        RegressionDesign.from_table(t, y='price')                 # X = other columns
        RegressionDesign.from_table(t, x=['a', 'b'], y='price')   # X = given columns
        RegressionDesign.from_arrays(X, y, n_partitions=4)        # direct from arrays
    """
    _X: Table
    _Y: Table

    @classmethod
    def build(cls, X: Any, Y: Any) -> RegressionDesign:
        """
        Build a design from predictor and response tables.

        Non-table inputs (DataFrames, arrays) are wrapped as one-partition
        tables first.

        Raises:
            PreconditionError: Non-numeric columns
            DimensionError: Response not exactly one column, row counts differ
            PartitionMismatchError: Partition counts or sizes differ
        """
        X_table = as_table(X, 'x')
        Y_table = as_table(Y, 'y')

        check_has_columns(X_table, 'X')
        check_numeric_columns(X_table, 'X')
        check_single_column(Y_table, 'Y')
        check_numeric_columns(Y_table, 'Y')
        check_same_partition_count(X_table, Y_table, names=('X', 'Y'))
        check_same_row_count(X_table, Y_table, names=('X', 'Y'))
        check_aligned_partitions(X_table, Y_table, names=('X', 'Y'))

        return cls(_X=X_table, _Y=Y_table)

    @classmethod
    def from_table(
        cls,
        table: Any,
        *,
        y: str,
        x: Sequence[str] | None = None,
    ) -> RegressionDesign:
        """
        Build a design from one table holding both X and y columns.

        Args:
            table: Table or DataFrame
            y: Response column
            x: Predictor columns, in model order. None means every column
               except `y`, in table order.
        """
        source = as_table(table, 'data')
        if y not in source.columns:
            raise KeyError(f"Table has no response column '{y}'. Available: {list(source.columns)}")
        if x is None:
            x = [c for c in source.columns if c != y]
        return cls.build(_select(source, x), _select(source, [y]))

    @classmethod
    def from_arrays(
        cls,
        X: ArrayLike,
        y: ArrayLike,
        *,
        n_partitions: int | None = None,
    ) -> RegressionDesign:
        """Build a design directly from arrays, split into `n_partitions`."""
        return cls.build(
            as_table(X, 'x', n_partitions=n_partitions),
            as_table(y, 'y', n_partitions=n_partitions),
        )

    # === Properties ===

    @property
    def X(self) -> Table:
        """Predictor table."""
        return self._X

    @property
    def Y(self) -> Table:
        """Response table (one column)."""
        return self._Y

    @property
    def predictor_names(self) -> tuple[str, ...]:
        return tuple(self._X.columns)

    @property
    def response_name(self) -> str:
        return self._Y.columns[0]

    @property
    def n(self) -> int:
        """Number of observations."""
        return self._X.n_rows

    @property
    def p(self) -> int:
        """Number of predictors."""
        return len(self._X.columns)

    @property
    def n_partitions(self) -> int:
        return self._X.n_partitions

    @property
    def partition_sizes(self) -> tuple[int, ...]:
        return tuple(self._X.partition_sizes)

    def partition(self, index: int) -> tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]:
        """Partition `index` as an (n_i x p) block and an (n_i,) response."""
        return self._X.block(index), self._Y.block(index).ravel()

    def partitions(self) -> Iterator[tuple[NDArray[np.floating[Any]], NDArray[np.floating[Any]]]]:
        """Yield every (X_i, y_i) pair, in partition order."""
        for index in range(self.n_partitions):
            yield self.partition(index)


def _select(table: Table, columns: Sequence[str]) -> Table:
    """Column subset of any Table, keeping partitioning."""
    if hasattr(table, 'select'):
        return table.select(columns)
    raise TypeError(
        f"{type(table).__name__} does not support column selection; "
        f"pass predictor and response tables separately"
    )
