"""
Core infrastructure for shardlm.

Shared abstractions used by the regression package.

Key components:
    protocols: Table, Backend protocols
    table: PartitionedTable, the in-memory Table
    result: Generic Result[P] envelope
    exceptions: Exception hierarchy
    validation: Precondition checks
    compute: Numeric kernel, tree reduction, timing
"""

from shardlm.core.protocols import Table, Backend
from shardlm.core.result import Result
from shardlm.core.table import PartitionedTable, as_table
from shardlm.core.exceptions import (
    ShardLMError,
    PreconditionError,
    DimensionError,
    PartitionMismatchError,
    MissingPredictorError,
    NumericalError,
    SingularMatrixError,
)

__all__ = [
    # Protocols
    "Table",
    "Backend",
    # Data
    "PartitionedTable",
    "as_table",
    # Result
    "Result",
    # Exceptions
    "ShardLMError",
    "PreconditionError",
    "DimensionError",
    "PartitionMismatchError",
    "MissingPredictorError",
    "NumericalError",
    "SingularMatrixError",
]
