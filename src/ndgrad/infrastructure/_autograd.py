"""
Backward traversal over the producer graph.

`backward_graph` walks from a tensor whose gradient has been seeded back to
the leaves. Each visited non-leaf tensor asks its producer to replay the
forward call that created it; the producer accumulates gradient into the
call's inputs and decrements their use counts. An input is expanded only
once its use count reaches zero, i.e. once every consumer has contributed
its share of the gradient, so a tensor feeding several operations is
propagated exactly once with its complete gradient.

Tensors are never imported here; the traversal only relies on the
`producer`, `use_count` and `backward` members of the tensor/function
interfaces.
"""

from __future__ import annotations

import warnings
from typing import Any

from ..domain._config import get_config
from ..domain._errors import DanglingGraphWarning


def backward_graph(y: Any) -> tuple:
    """
    Propagate `y.grad` to every tensor upstream of `y`.

    Parameters
    ----------
    y : Tensor
        Tensor whose `grad` already holds the gradient to propagate. Its own
        use count is not consulted.

    Returns
    -------
    tuple[Tensor, ...]
        Non-leaf tensors reached by the traversal whose use count stayed
        positive. Their producers were not visited.

    Notes
    -----
    - Inputs repeated within one call (e.g. `x + x`) are considered once per
      call, after the call has decremented their use count for every
      occurrence.
    - When the `warn_on_dangling` config flag is set and some reached tensors
      are left pending, a single `DanglingGraphWarning` is emitted.
    """
    pending: list[Any] = [y]
    reached: dict[int, Any] = {}
    expanded: set[int] = set()

    while pending:
        t = pending.pop()
        f = t.producer
        if f is None:
            continue
        expanded.add(id(t))

        seen: set[int] = set()
        for x in f.backward(t):
            xid = id(x)
            if xid in seen:
                continue
            seen.add(xid)

            if x.producer is None:
                continue
            if x.use_count == 0:
                if xid not in expanded:
                    pending.append(x)
            else:
                reached[xid] = x

    dangling = tuple(
        t
        for tid, t in reached.items()
        if tid not in expanded and t.use_count > 0 and t.producer is not None
    )
    if dangling and get_config().warn_on_dangling:
        warnings.warn(
            f"Backward pass stopped at {len(dangling)} tensor(s) with outstanding "
            "uses; their producers were not visited: "
            + ", ".join(f"{t.name}(use_count={t.use_count})" for t in dangling),
            DanglingGraphWarning,
            stacklevel=3,
        )
    return dangling
