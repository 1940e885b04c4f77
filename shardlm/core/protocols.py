"""
Core protocols for shardlm.

These define the structural interfaces the fitter consumes and the
backends provide. Protocol (structural typing) rather than ABC so that an
external table implementation (a wrapper over a distributed dataframe,
say) works without inheriting from anything in this package.
"""

from typing import Protocol, TypeVar, Any, Mapping, Sequence, runtime_checkable

import numpy as np
from numpy.typing import NDArray

P = TypeVar('P')  # Parameter payload type
D = TypeVar('D')  # Design type


@runtime_checkable
class Table(Protocol):
    """
    A row-partitioned table of columns.

    The fitter never mutates a table. It reads the schema, checks the
    partitioning and pulls each partition as a dense float64 block.
    Row order within a partition and partition order together define the
    logical row order of the table.
    """

    @property
    def columns(self) -> tuple[str, ...]:
        """Column names in storage order."""
        ...

    @property
    def dtypes(self) -> Mapping[str, np.dtype]:
        """Column name -> dtype, used to reject non-numeric columns."""
        ...

    @property
    def n_rows(self) -> int:
        """Total number of rows across all partitions."""
        ...

    @property
    def n_partitions(self) -> int:
        """Number of partitions (>= 1)."""
        ...

    @property
    def partition_sizes(self) -> tuple[int, ...]:
        """Row count of each partition, in partition order."""
        ...

    def block(
        self, index: int, columns: Sequence[str] | None = None
    ) -> NDArray[np.floating[Any]]:
        """
        Materialize one partition as an (n_i, c) float64 matrix.

        Args:
            index: Partition index, 0-based
            columns: Columns to include, in this order. None means all.
        """
        ...


@runtime_checkable
class Backend(Protocol[D, P]):
    """
    Protocol for computational backends.

    A backend takes a validated design and produces a Result envelope
    around its parameter payload. Backends hold only construction-time
    options (branching factor, executor) and no per-call state.

    Type Parameters:
        D: The design type this backend accepts
        P: The parameter payload type this backend produces
    """

    @property
    def name(self) -> str:
        """
        Backend identifier.

        Convention: '{device}_{strategy}', e.g. 'cpu_single', 'cpu_tree'.
        """
        ...

    def solve(self, design: D) -> 'Result[P]':
        """
        Execute the computation.

        Raises:
            NumericalError: If numerical issues prevent a solution
            PreconditionError: If the design is invalid for this backend
        """
        ...
