"""
Prediction from a fitted linear model.

Each output row is a fixed record (row_index, value). row_index is the
row's logical position in the input: 0-based and contiguous, counting
through partitions in partition order. Splitting the same rows into
different partitions therefore yields the same records.
"""

from __future__ import annotations

from concurrent.futures import Executor
from dataclasses import dataclass
from functools import partial
from typing import Any, Iterator, NamedTuple, Sequence, TYPE_CHECKING
import numpy as np
from numpy.typing import NDArray

from shardlm.core.protocols import Table
from shardlm.core.table import as_table
from shardlm.core.compute.reduce import map_partitions
from shardlm.core.validation import check_predictors_present, check_numeric_columns

if TYPE_CHECKING:
    import pandas as pd
    from shardlm.regression.solution import LinearModel


class Prediction(NamedTuple):
    """One predicted row."""
    row_index: int
    value: float


@dataclass(frozen=True, eq=False)
class PredictionResult:
    """
    Predicted values, index-aligned with the input rows.

    Attributes:
        row_index: Logical row positions (n,), int64, 0..n-1
        value: Predicted response (n,), float64
        n_partitions: Partitions of the input the predictions came from
    """
    row_index: NDArray[np.int64]
    value: NDArray[np.floating[Any]]
    n_partitions: int

    def __post_init__(self) -> None:
        row_index = np.array(self.row_index, dtype=np.int64)
        value = np.array(self.value, dtype=np.float64)
        if row_index.shape != value.shape:
            raise ValueError(
                f"row_index shape {row_index.shape} != value shape {value.shape}"
            )
        row_index.setflags(write=False)
        value.setflags(write=False)
        object.__setattr__(self, 'row_index', row_index)
        object.__setattr__(self, 'value', value)

    def __len__(self) -> int:
        return len(self.value)

    def __iter__(self) -> Iterator[Prediction]:
        for i, v in zip(self.row_index, self.value):
            yield Prediction(int(i), float(v))

    def records(self) -> list[Prediction]:
        return list(self)

    def to_frame(self) -> 'pd.DataFrame':
        """DataFrame with columns 'index' and 'value'."""
        import pandas as pd
        return pd.DataFrame({'index': self.row_index, 'value': self.value})

    def __repr__(self) -> str:
        return f"PredictionResult(n={len(self)}, n_partitions={self.n_partitions})"


def predict(
    model: 'LinearModel',
    new_data: Any,
    *,
    executor: Executor | None = None,
) -> PredictionResult:
    """
    Apply `model` to every row of `new_data`.

    Predictor columns are picked by name in model order; other columns
    are ignored. A one-partition input is multiplied in one go. Otherwise
    each partition is multiplied independently (on `executor` if given)
    and row indices are offset by the rows of the preceding partitions.

    Raises:
        MissingPredictorError: If any model predictor is absent
        PreconditionError: If a predictor column is not numeric
    """
    table = as_table(new_data, 'x')
    names = model.predictor_names
    check_predictors_present(table, names, 'new_data')
    check_numeric_columns(table, 'new_data', columns=names)
    coefficients = model.coefficients

    if table.n_partitions == 1:
        value = table.block(0, names) @ coefficients
        return PredictionResult(
            row_index=np.arange(len(value), dtype=np.int64),
            value=value,
            n_partitions=1,
        )

    parts = map_partitions(
        partial(_predict_partition, table, names, coefficients),
        range(table.n_partitions),
        executor,
    )
    offsets = np.concatenate([[0], np.cumsum([len(v) for v in parts])[:-1]]).astype(np.int64)
    row_index = np.concatenate([
        offset + np.arange(len(v), dtype=np.int64) for offset, v in zip(offsets, parts)
    ])
    return PredictionResult(
        row_index=row_index,
        value=np.concatenate(parts),
        n_partitions=table.n_partitions,
    )


def _predict_partition(
    table: Table,
    names: Sequence[str],
    coefficients: NDArray[np.floating[Any]],
    index: int,
) -> NDArray[np.floating[Any]]:
    return table.block(index, names) @ coefficients
