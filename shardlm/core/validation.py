"""
Precondition checks for shardlm.

These validators follow the "fail fast, fail loud" principle. They raise
immediately with clear error messages rather than repartitioning,
coercing or guessing at user intent, and they run before any numeric
work starts.

Design principles:
    - Each function validates ONE thing
    - Table / argument names included in all error messages
    - Actual values reported alongside the expectation
"""

from typing import Sequence
import numpy as np

from shardlm.core.exceptions import (
    PreconditionError,
    DimensionError,
    PartitionMismatchError,
    MissingPredictorError,
)
from shardlm.core.protocols import Table


def check_numeric_columns(
    table: Table, name: str, columns: Sequence[str] | None = None
) -> None:
    """
    Verify columns of `table` have a numeric dtype.

    Booleans, strings, datetimes and object columns are rejected.

    Args:
        table: Table to check
        name: Table name for error messages
        columns: Columns to check. None means all.

    Raises:
        PreconditionError: Naming every non-numeric column and its dtype
    """
    dtypes = table.dtypes
    names = table.columns if columns is None else columns
    bad = [
        f"{col} ({dtypes[col]})"
        for col in names
        if not np.issubdtype(np.dtype(dtypes[col]), np.number)
    ]
    if bad:
        raise PreconditionError(
            f"{name}: all columns must be numeric, got non-numeric column(s): "
            f"{', '.join(bad)}"
        )


def check_has_columns(table: Table, name: str) -> None:
    """Verify `table` has at least one column."""
    if len(table.columns) == 0:
        raise DimensionError(f"{name}: table has no columns")


def check_single_column(table: Table, name: str) -> None:
    """
    Verify `table` has exactly one column.

    Raises:
        DimensionError: If the column count is not 1
    """
    if len(table.columns) != 1:
        raise DimensionError(
            f"{name}: must have exactly one column, got {len(table.columns)} "
            f"({list(table.columns)})"
        )


def check_same_partition_count(
    a: Table, b: Table, names: tuple[str, str]
) -> None:
    """
    Verify two tables have the same number of partitions.

    Raises:
        PartitionMismatchError: If the counts differ
    """
    if a.n_partitions != b.n_partitions:
        raise PartitionMismatchError(
            f"{names[0]} and {names[1]} must have the same number of partitions: "
            f"{names[0]}={a.n_partitions}, {names[1]}={b.n_partitions}",
            sizes=(a.n_partitions, b.n_partitions),
        )


def check_same_row_count(a: Table, b: Table, names: tuple[str, str]) -> None:
    """
    Verify two tables have the same total number of rows.

    Raises:
        DimensionError: If the row counts differ
    """
    if a.n_rows != b.n_rows:
        raise DimensionError(
            f"{names[0]} and {names[1]} must have the same number of rows: "
            f"{names[0]}={a.n_rows}, {names[1]}={b.n_rows}"
        )


def check_aligned_partitions(a: Table, b: Table, names: tuple[str, str]) -> None:
    """
    Verify partition i of `a` has as many rows as partition i of `b`, for all i.

    Assumes the partition counts already match.

    Raises:
        PartitionMismatchError: Naming the first misaligned partition
    """
    for i, (size_a, size_b) in enumerate(zip(a.partition_sizes, b.partition_sizes)):
        if size_a != size_b:
            raise PartitionMismatchError(
                f"Partition {i} has {size_a} rows in {names[0]} but "
                f"{size_b} rows in {names[1]}",
                partition=i,
                sizes=(size_a, size_b),
            )


def check_predictors_present(
    table: Table, predictors: Sequence[str], name: str
) -> None:
    """
    Verify every name in `predictors` is a column of `table`.

    Extra columns in `table` are fine.

    Raises:
        MissingPredictorError: Listing all absent predictors in model order
    """
    available = set(table.columns)
    missing = tuple(p for p in predictors if p not in available)
    if missing:
        raise MissingPredictorError(
            f"{name}: missing predictor(s) {list(missing)} required by the model. "
            f"Available: {list(table.columns)}",
            missing=missing,
        )


def check_branching_factor(branching_factor: int) -> None:
    """
    Verify a tree-reduce branching factor is an integer >= 2.

    Raises:
        ValueError: This is a configuration error, not a data precondition
    """
    if isinstance(branching_factor, bool) or not isinstance(branching_factor, (int, np.integer)):
        raise ValueError(
            f"branching_factor must be an integer, got {type(branching_factor).__name__}"
        )
    if branching_factor < 2:
        raise ValueError(f"branching_factor must be >= 2, got {branching_factor}")
