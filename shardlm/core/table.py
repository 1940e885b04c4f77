"""
In-memory partitioned table.

PartitionedTable is the "I have rows, split into shards" abstraction. It
doesn't know it is feeding a regression. It keeps each partition as a
dict of 1-D column arrays with their original dtypes, so a string column
stays a string column until someone asks for a float block and validation
can reject it first.

Usage:
    from shardlm import PartitionedTable

    t = PartitionedTable.from_arrays(X, columns=['a', 'b'], n_partitions=4)
    t = PartitionedTable.from_dataframe(df, partition_sizes=[100, 250, 50])
    t = PartitionedTable.from_dataframes([df_2024, df_2025])
    t = PartitionedTable.from_file("data.csv", n_partitions=8)

    t.n_partitions           # 4
    t.block(0, ['b', 'a'])   # float64 (n_0, 2)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Sequence, TYPE_CHECKING
import numpy as np
from numpy.typing import ArrayLike, NDArray

from shardlm.core.exceptions import PreconditionError, DimensionError
from shardlm.core.protocols import Table

if TYPE_CHECKING:
    import pandas as pd


@dataclass(frozen=True, repr=False)
class PartitionedTable:
    """
    Row-partitioned table of named columns. Immutable.

    Construct via factory classmethods, not directly. Every partition
    holds the same columns; partition order plus row order within each
    partition is the logical row order.
    """
    _partitions: tuple[dict[str, NDArray], ...]
    _columns: tuple[str, ...]

    # === Schema ===

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def dtypes(self) -> dict[str, np.dtype]:
        """
        Column dtypes across partitions.

        A column that is numeric everywhere reports the promoted numeric
        dtype. A column that is non-numeric in any partition reports that
        partition's dtype.
        """
        result: dict[str, np.dtype] = {}
        for name in self._columns:
            kinds = [part[name].dtype for part in self._partitions]
            odd = [dt for dt in kinds if not np.issubdtype(dt, np.number)]
            result[name] = odd[0] if odd else np.result_type(*kinds)
        return result

    @property
    def n_columns(self) -> int:
        return len(self._columns)

    # === Partitioning ===

    @property
    def partition_sizes(self) -> tuple[int, ...]:
        return tuple(_partition_length(part, self._columns) for part in self._partitions)

    @property
    def n_partitions(self) -> int:
        return len(self._partitions)

    @property
    def n_rows(self) -> int:
        return sum(self.partition_sizes)

    # === Access ===

    def block(
        self, index: int, columns: Sequence[str] | None = None
    ) -> NDArray[np.floating[Any]]:
        """
        Materialize partition `index` as a float64 matrix.

        Args:
            index: Partition index, 0-based
            columns: Columns in the order wanted. None means all columns.

        Raises:
            IndexError: If the partition index is out of range
            KeyError: If a requested column does not exist
        """
        if not 0 <= index < self.n_partitions:
            raise IndexError(
                f"Partition {index} out of range for table with "
                f"{self.n_partitions} partitions"
            )
        names = self._resolve(columns)
        part = self._partitions[index]
        if not names:
            return np.empty((_partition_length(part, self._columns), 0), dtype=np.float64)
        return np.column_stack([np.asarray(part[name], dtype=np.float64) for name in names])

    def blocks(
        self, columns: Sequence[str] | None = None
    ) -> Iterator[NDArray[np.floating[Any]]]:
        """Yield every partition as a float64 block, in partition order."""
        for index in range(self.n_partitions):
            yield self.block(index, columns)

    def select(self, columns: Sequence[str]) -> PartitionedTable:
        """Return a table with only `columns`, keeping the partitioning."""
        names = self._resolve(columns)
        parts = tuple({name: part[name] for name in names} for part in self._partitions)
        return PartitionedTable(_partitions=parts, _columns=names)

    def to_frame(self) -> 'pd.DataFrame':
        """Concatenate all partitions into one pandas DataFrame."""
        import pandas as pd
        frames = [pd.DataFrame({name: part[name] for name in self._columns})
                  for part in self._partitions]
        return pd.concat(frames, ignore_index=True)

    def _resolve(self, columns: Sequence[str] | None) -> tuple[str, ...]:
        if columns is None:
            return self._columns
        if isinstance(columns, str):
            columns = [columns]
        unknown = [name for name in columns if name not in self._columns]
        if unknown:
            raise KeyError(
                f"Table has no column(s) {unknown}. Available: {list(self._columns)}"
            )
        return tuple(columns)

    def __repr__(self) -> str:
        return (
            f"PartitionedTable(n_rows={self.n_rows}, columns={list(self._columns)}, "
            f"n_partitions={self.n_partitions})"
        )

    # === Factory Methods ===

    @classmethod
    def from_arrays(
        cls,
        data: ArrayLike,
        *,
        columns: Sequence[str] | None = None,
        n_partitions: int | None = None,
        partition_sizes: Sequence[int] | None = None,
    ) -> PartitionedTable:
        """
        Construct from one array, split row-wise into partitions.

        Args:
            data: 1-D (one column) or 2-D array-like. dtype is preserved.
            columns: Column names. Defaults to x0, x1, ...
            n_partitions: Split into this many near-equal partitions
            partition_sizes: Explicit row count per partition
        """
        arr = np.asarray(data)
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)
        if arr.ndim != 2:
            raise DimensionError(
                f"data: expected 1D or 2D array, got {arr.ndim}D with shape {arr.shape}"
            )
        names = _column_names(columns, arr.shape[1])
        bounds = _split_bounds(arr.shape[0], n_partitions, partition_sizes)
        parts = tuple(
            {name: arr[start:stop, j] for j, name in enumerate(names)}
            for start, stop in bounds
        )
        return cls._build(parts, names)

    @classmethod
    def from_blocks(
        cls,
        blocks: Sequence[ArrayLike],
        *,
        columns: Sequence[str] | None = None,
    ) -> PartitionedTable:
        """Construct from one array per partition, all with the same width."""
        arrays = []
        for i, block in enumerate(blocks):
            arr = np.asarray(block)
            if arr.ndim == 1:
                arr = arr.reshape(-1, 1)
            if arr.ndim != 2:
                raise DimensionError(
                    f"blocks[{i}]: expected 1D or 2D array, got {arr.ndim}D"
                )
            arrays.append(arr)
        if not arrays:
            raise PreconditionError("blocks: at least one partition is required")
        widths = {arr.shape[1] for arr in arrays}
        if len(widths) > 1:
            raise DimensionError(f"blocks: inconsistent column counts {sorted(widths)}")
        names = _column_names(columns, arrays[0].shape[1])
        parts = tuple(
            {name: arr[:, j] for j, name in enumerate(names)} for arr in arrays
        )
        return cls._build(parts, names)

    @classmethod
    def from_dataframe(
        cls,
        df: 'pd.DataFrame',
        *,
        n_partitions: int | None = None,
        partition_sizes: Sequence[int] | None = None,
    ) -> PartitionedTable:
        """Construct from a pandas DataFrame, split row-wise."""
        names = tuple(str(c) for c in df.columns)
        bounds = _split_bounds(len(df), n_partitions, partition_sizes)
        parts = tuple(
            {name: df.iloc[start:stop, j].to_numpy() for j, name in enumerate(names)}
            for start, stop in bounds
        )
        return cls._build(parts, names)

    @classmethod
    def from_dataframes(cls, frames: Sequence['pd.DataFrame']) -> PartitionedTable:
        """Construct with one DataFrame per partition."""
        if not frames:
            raise PreconditionError("frames: at least one partition is required")
        names = tuple(str(c) for c in frames[0].columns)
        parts = []
        for i, df in enumerate(frames):
            these = tuple(str(c) for c in df.columns)
            if these != names:
                raise PreconditionError(
                    f"frames[{i}]: columns {list(these)} differ from frames[0] {list(names)}"
                )
            parts.append({name: df.iloc[:, j].to_numpy() for j, name in enumerate(names)})
        return cls._build(tuple(parts), names)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        *,
        columns: Sequence[str] | None = None,
        n_partitions: int | None = None,
        partition_sizes: Sequence[int] | None = None,
    ) -> PartitionedTable:
        """Construct from CSV/TSV (via pandas) or NPY (via numpy)."""
        path = Path(path)
        suffix = path.suffix.lower()

        if suffix in ('.csv', '.tsv'):
            import pandas as pd
            sep = '\t' if suffix == '.tsv' else ','
            df = pd.read_csv(path, sep=sep, usecols=columns)
            return cls.from_dataframe(
                df,
                n_partitions=n_partitions,
                partition_sizes=partition_sizes,
            )
        elif suffix == '.npy':
            data = np.load(path)
            return cls.from_arrays(
                data,
                columns=columns,
                n_partitions=n_partitions,
                partition_sizes=partition_sizes,
            )
        else:
            raise PreconditionError(f"Unknown file format: {suffix}")

    @classmethod
    def _build(
        cls,
        parts: tuple[dict[str, NDArray], ...],
        columns: tuple[str, ...],
    ) -> PartitionedTable:
        if len(set(columns)) != len(columns):
            raise PreconditionError(f"Duplicate column names: {list(columns)}")
        for i, part in enumerate(parts):
            lengths = {len(part[name]) for name in columns}
            if len(lengths) > 1:
                raise DimensionError(
                    f"Partition {i}: columns have inconsistent lengths {sorted(lengths)}"
                )
        return cls(_partitions=parts, _columns=columns)


def as_table(obj: Any, name: str, *, n_partitions: int | None = None) -> Table:
    """
    Coerce `obj` into something satisfying the Table protocol.

    Tables pass through untouched. pandas DataFrames and Series, and plain
    array-likes, become a PartitionedTable (one partition unless
    `n_partitions` says otherwise). Unnamed array columns are named after
    `name`: a single column takes `name` itself, several take name0,
    name1, ...

    Args:
        obj: Table, DataFrame, Series or array-like
        name: Argument name, used for default column names
        n_partitions: Partition count for non-table inputs
    """
    import pandas as pd

    if isinstance(obj, Table):
        return obj
    if isinstance(obj, pd.Series):
        obj = obj.to_frame(name=obj.name if obj.name is not None else name)
    if isinstance(obj, pd.DataFrame):
        return PartitionedTable.from_dataframe(obj, n_partitions=n_partitions)

    arr = np.asarray(obj)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise DimensionError(
            f"{name}: expected 1D or 2D array, got {arr.ndim}D with shape {arr.shape}"
        )
    if arr.shape[1] == 1:
        columns = [name]
    else:
        columns = [f"{name}{j}" for j in range(arr.shape[1])]
    return PartitionedTable.from_arrays(arr, columns=columns, n_partitions=n_partitions)


def _column_names(columns: Sequence[str] | None, width: int) -> tuple[str, ...]:
    if columns is None:
        return tuple(f"x{j}" for j in range(width))
    names = tuple(str(c) for c in columns)
    if len(names) != width:
        raise DimensionError(
            f"columns: got {len(names)} names for {width} columns"
        )
    return names


def _split_bounds(
    n_rows: int,
    n_partitions: int | None,
    partition_sizes: Sequence[int] | None,
) -> list[tuple[int, int]]:
    """Row ranges [start, stop) for each partition."""
    if partition_sizes is not None:
        if n_partitions is not None and n_partitions != len(partition_sizes):
            raise ValueError(
                f"n_partitions={n_partitions} disagrees with "
                f"{len(partition_sizes)} partition_sizes"
            )
        sizes = [int(s) for s in partition_sizes]
        if not sizes or any(s < 0 for s in sizes):
            raise ValueError(f"partition_sizes must be non-negative and non-empty, got {sizes}")
        if sum(sizes) != n_rows:
            raise DimensionError(
                f"partition_sizes sum to {sum(sizes)}, table has {n_rows} rows"
            )
    else:
        k = 1 if n_partitions is None else int(n_partitions)
        if k < 1:
            raise ValueError(f"n_partitions must be >= 1, got {k}")
        sizes = [len(chunk) for chunk in np.array_split(np.arange(n_rows), k)]

    offsets = np.concatenate([[0], np.cumsum(sizes)]).astype(int)
    return [(int(offsets[i]), int(offsets[i + 1])) for i in range(len(sizes))]


def _partition_length(part: dict[str, NDArray], columns: tuple[str, ...]) -> int:
    if not columns:
        return 0
    return len(part[columns[0]])
