"""
Numeric thresholds and comparison tiers.

Two kinds of constants live here:
- thresholds the kernel acts on (when X'X counts as singular, when an
  invertible X'X is worth a warning);
- tolerance tiers describing how closely two fits of the same data are
  expected to agree. Single-partition results are the reference; a
  partitioned fit sums the same products in a different order, so its
  tier allows for summation-order rounding.

Used by the numeric kernel, the backends and the test suite.
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class ToleranceTier:
    """Tolerance specification for numerical comparison."""
    rtol: float
    atol: float
    name: str
    description: str


# One partition, products formed in a single pass
SINGLE_FP64 = ToleranceTier(
    rtol=1e-12,
    atol=1e-12,
    name='single_fp64',
    description='Single partition, double precision reference',
)

# Many partitions, products summed through a reduction tree
PARTITIONED_FP64 = ToleranceTier(
    rtol=1e-9,
    atol=1e-10,
    name='partitioned_fp64',
    description='Tree-reduced partitions, equal to reference up to summation order',
)

# Invertible, but coefficients lose about half their digits.
GRAM_WARNING_THRESHOLD = 1e8


def gram_condition_threshold(p: int) -> float:
    """
    Largest condition number at which a p x p X'X still counts as invertible.

    An eigenvalue below p * eps * largest is indistinguishable from zero in
    float64, the same cutoff numpy.linalg.matrix_rank applies to singular
    values. Anything between GRAM_WARNING_THRESHOLD and this is fitted with
    a warning.
    """
    return 1.0 / (max(p, 1) * np.finfo(np.float64).eps)


def select_tolerance(n_partitions: int) -> ToleranceTier:
    """Select the tier expected for a fit over `n_partitions` partitions."""
    if n_partitions > 1:
        return PARTITIONED_FP64
    return SINGLE_FP64
