"""
Shared compute infrastructure for shardlm.

Numeric kernel, map/tree-reduce execution primitives, stage timing and
numeric thresholds. Nothing here knows about regression; the fitter in
shardlm.regression composes these pieces.

Submodules:
    linalg: Gram products, guarded inversion, standard errors
    reduce: map_partitions, tree_reduce, tree_depth
    timing: Section timer
    tolerances: Singularity thresholds and comparison tiers
"""

from shardlm.core.compute.linalg import (
    GramInverse,
    gram,
    cross_product,
    condition_number,
    invert_gram,
    standard_errors,
    safe_divide,
)
from shardlm.core.compute.reduce import (
    DEFAULT_BRANCHING_FACTOR,
    map_partitions,
    tree_depth,
    tree_reduce,
)
from shardlm.core.compute.timing import Timer

__all__ = [
    # Kernel
    "GramInverse",
    "gram",
    "cross_product",
    "condition_number",
    "invert_gram",
    "standard_errors",
    "safe_divide",
    # Execution
    "DEFAULT_BRANCHING_FACTOR",
    "map_partitions",
    "tree_depth",
    "tree_reduce",
    # Timing
    "Timer",
]
