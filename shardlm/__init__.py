"""
shardlm: linear regression over partitioned data.

Fits ordinary least squares on tables split into row partitions by
combining per-partition sufficient statistics with a tree reduction, and
reports R-style inference (standard errors, t and p values, R², F).

Submodules:
    core: Tables, exceptions, numeric kernel, tree reduction
    regression: fit(), LinearModel, LinearSummary, prediction
"""

__version__ = "0.1.0"

from shardlm import core
from shardlm import regression
from shardlm.core.table import PartitionedTable
from shardlm.regression import fit, predict

__all__ = [
    "__version__",
    "core",
    "regression",
    "PartitionedTable",
    "fit",
    "predict",
]
