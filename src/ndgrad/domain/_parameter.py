"""
Trainable parameter interface definitions.

This module defines the domain-level interface for learnable state exposed by
layer collaborators. A parameter is a named pair of a value tensor and the
buffer its gradient accumulates into. Optimizer collaborators enumerate
parameters, read (and optionally average) gradients, write updated values
back into the value tensor and clear the gradient; the core never needs to
know what an optimizer is.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ._tensor import ITensor


@runtime_checkable
class IParameter(Protocol):
    """
    Domain-level interface for trainable parameters.

    Notes
    -----
    - `value` is the tensor whose data an optimizer rewrites.
    - `grad` is the flat gradient buffer matching `value.data` in size.
    """

    name: str

    @property
    def value(self) -> ITensor:
        """
        Return the tensor holding the parameter values.

        Returns
        -------
        ITensor
            The value tensor.
        """
        ...

    @property
    def grad(self) -> Any:
        """
        Return the accumulated gradient buffer.

        Returns
        -------
        Any
            Flat gradient array, same size as `value.data`.
        """
        ...

    def count_up(self) -> None:
        """
        Record that one more backward pass accumulated into `grad`.
        """
        ...

    def reduce_gradient(self) -> bool:
        """
        Average `grad` over the number of accumulated backward passes.

        Returns
        -------
        bool
            True if the gradient was divided, False if nothing accumulated.
        """
        ...

    def clear_gradient(self) -> None:
        """
        Zero the gradient buffer and reset the accumulation counter.
        """
        ...
