"""
Generic result envelope returned by every backend.

Backends return Result[P] where P is the domain payload (for regression,
LinearParams). The envelope carries what is common to all of them: which
backend ran, how long each stage took, structured metadata and non-fatal
warnings.
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')  # Parameter payload type


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for a backend computation.

    Type Parameters:
        P: The domain-specific parameter payload type

    Attributes:
        params: Domain-specific payload (coefficients, sums of squares, ...)
        info: Structured metadata (method, tree depth, condition number)
        timing: Per-stage timing breakdown, or None if not measured
        backend_name: Identifier of the backend that produced this result
        warnings: Non-fatal issues encountered during computation

    Examples:
        >>> Result(
        ...     params=LinearParams(...),
        ...     info={'method': 'normal_equations', 'n_partitions': 4},
        ...     timing={'total_seconds': 0.01, 'tree_reduce': 0.002},
        ...     backend_name='cpu_tree',
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """Check if any warning contains the given substring."""
        return any(substring in w for w in self.warnings)
