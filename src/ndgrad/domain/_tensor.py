"""
Tensor interface definitions.

This module defines the domain-level interface for batched tensor objects
using structural typing. It captures what layer, optimizer and training-loop
collaborators may rely on: paired value/gradient buffers, per-sample shape
and batch metadata, the producer back-reference, and the bookkeeping counters
consulted by the backward traversal.

Notes
-----
- Shapes never include the batch dimension. `data` and `grad` hold
  `batch_count` samples of `length` elements each, stored contiguously in
  row-major order.
- The protocol is runtime-checkable so collaborators can validate inputs
  with `isinstance` without importing the NumPy-backed implementation.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class ITensor(Protocol):
    """
    Batched tensor interface.

    Notes
    -----
    - `use_count` is shared bookkeeping: it is incremented by every forward
      call that consumes the tensor and decremented by the matching backward.
      Callers must not reset it in the middle of a pass.
    - `train_count` counts backward passes accumulated into `grad` since the
      last `clear_gradient()`.
    """

    @property
    def shape(self) -> tuple[int, ...]:
        """
        Return the per-sample shape (batch dimension excluded).

        Returns
        -------
        tuple[int, ...]
            The tensor's shape.
        """
        ...

    @property
    def batch_count(self) -> int:
        """
        Return the number of samples stacked in the buffers.

        Returns
        -------
        int
            Number of independent samples.
        """
        ...

    @property
    def length(self) -> int:
        """
        Return the number of elements per sample (`prod(shape)`).

        Returns
        -------
        int
            Elements per sample.
        """
        ...

    @property
    def data(self) -> Any:
        """
        Return the flat value buffer.

        Returns
        -------
        Any
            Backend-native flat array of `length * batch_count` elements.
        """
        ...

    @property
    def grad(self) -> Any:
        """
        Return the flat gradient buffer, same size as `data`.

        Returns
        -------
        Any
            Backend-native flat array of accumulated gradients.
        """
        ...

    producer: Optional[Any]
    use_count: int
    train_count: int

    def backward(self) -> None:
        """
        Seed this tensor's gradient with ones and propagate it upstream.
        """
        ...

    def reduce_gradient(self) -> bool:
        """
        Average the accumulated gradient over `train_count`.

        Returns
        -------
        bool
            True if the gradient was divided, False if `train_count` is 0.
        """
        ...

    def clear_gradient(self) -> None:
        """
        Reset the gradient buffer to zeros and `train_count` to 0.
        """
        ...

    def count_up(self) -> None:
        """
        Record one more accumulated backward pass in `train_count`.
        """
        ...
