"""
Map and tree-reduce over partitions.

The execution primitives of the partitioned fitter. Per-partition work is
mapped independently (optionally on a concurrent.futures executor), and
the partial results are combined level by level, `branching_factor`
items per group, until one remains. With P partials the tree has
ceil(log_b(P)) levels, so the longest chain of dependent combines grows
logarithmically in P instead of linearly.

`combine` must be associative and commutative. Then every tree shape
yields the same result up to floating-point summation order.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from functools import partial
from typing import Callable, Iterable, Sequence, TypeVar

from shardlm.core.validation import check_branching_factor

T = TypeVar('T')
R = TypeVar('R')

DEFAULT_BRANCHING_FACTOR = 2

log = logging.getLogger("shardlm.compute.reduce")


def map_partitions(
    fn: Callable[[T], R],
    items: Iterable[T],
    executor: Executor | None = None,
) -> list[R]:
    """
    Apply `fn` to each item, preserving order.

    Args:
        fn: Pure per-partition function
        items: One work item per partition
        executor: Optional executor. None runs serially in this thread.
    """
    if executor is None:
        return [fn(item) for item in items]
    return list(executor.map(fn, items))


def tree_depth(n_items: int, branching_factor: int = DEFAULT_BRANCHING_FACTOR) -> int:
    """
    Number of combine levels needed for `n_items`, i.e. ceil(log_b(n)).

    Computed with integers so that exact powers of b don't round up.
    """
    check_branching_factor(branching_factor)
    depth = 0
    capacity = 1
    while capacity < n_items:
        capacity *= branching_factor
        depth += 1
    return depth


def tree_reduce(
    items: Sequence[T],
    combine: Callable[[T, T], T],
    branching_factor: int = DEFAULT_BRANCHING_FACTOR,
    executor: Executor | None = None,
) -> T:
    """
    Combine `items` through a balanced tree with fan-in `branching_factor`.

    Each level splits the current items into consecutive groups of
    `branching_factor` and folds each group with `combine`. Groups on the
    same level are independent and run on `executor` when one is given.

    Args:
        items: Partial results, at least one
        combine: Associative, commutative pairwise combiner (a, b) -> c
        branching_factor: Group size per level, >= 2
        executor: Optional executor for the groups of each level

    Returns:
        The fully combined result. A single item is returned unchanged.

    Raises:
        ValueError: If `items` is empty or `branching_factor` < 2
    """
    check_branching_factor(branching_factor)
    level = list(items)
    if not level:
        raise ValueError("tree_reduce() requires at least one item")

    log.debug(
        "tree_reduce: %d items, branching factor %d, depth %d",
        len(level), branching_factor, tree_depth(len(level), branching_factor),
    )

    while len(level) > 1:
        groups = [level[i:i + branching_factor] for i in range(0, len(level), branching_factor)]
        level = map_partitions(partial(_reduce_group, combine), groups, executor)
    return level[0]


def _reduce_group(combine: Callable[[T, T], T], group: list[T]) -> T:
    """Fold one group left to right with `combine`."""
    result = group[0]
    for item in group[1:]:
        result = combine(result, item)
    return result
