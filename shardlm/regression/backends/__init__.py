"""
Regression backends.

Available backends:
    CPUSingleBackend: one partition, direct normal equations
    CPUTreeBackend: many partitions, tree-reduced normal equations
"""

from shardlm.regression.backends.cpu import CPUSingleBackend, CPUTreeBackend

__all__ = [
    "CPUSingleBackend",
    "CPUTreeBackend",
]
