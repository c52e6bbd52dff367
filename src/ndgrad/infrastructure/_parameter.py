"""
Concrete trainable parameter implementation.

This module defines `Parameter`, the infrastructure-level implementation of
the domain contract `IParameter`. A `Parameter` names a value tensor owned by
a Function (a weight matrix, a bias, an embedding table) and the buffer its
gradient accumulates into.

Design notes
------------
- Most parameters keep their gradient in the value tensor's own `grad`
  buffer, which is where Function backward hooks accumulate. A separate
  gradient tensor can be supplied for functions that keep the two apart.
- The accumulation counter (`train_count`) lives on the value tensor, so
  `Tensor.reduce_gradient()` and `Parameter.reduce_gradient()` agree.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ..domain._errors import ShapeMismatchError
from ..domain._parameter import IParameter
from .tensor._tensor import Tensor


class Parameter(IParameter):
    """
    Named value/gradient pair exposed to optimizers.

    Parameters
    ----------
    name : str
        Display name, usually "<function name> <parameter name>".
    value : Tensor
        Tensor whose data an optimizer rewrites.
    gradient : Tensor, optional
        Separate tensor whose `data` buffer receives the gradient. Defaults to
        the value tensor's own `grad` buffer.

    Raises
    ------
    ShapeMismatchError
        If `gradient` does not match `value` in size.
    """

    def __init__(self, name: str, value: Tensor, gradient: Optional[Tensor] = None) -> None:
        if gradient is not None and gradient.size != value.size:
            raise ShapeMismatchError(
                f"Gradient of size {gradient.size} does not match parameter {name!r} "
                f"of size {value.size}",
                expected=value.size,
                actual=gradient.size,
            )
        self.name: str = name
        self._value: Tensor = value
        self._gradient: Optional[Tensor] = gradient

    @property
    def value(self) -> Tensor:
        """
        Return the tensor holding the parameter values.
        """
        return self._value

    @property
    def grad(self) -> np.ndarray:
        """
        Return the live flat gradient buffer.
        """
        if self._gradient is not None:
            return self._gradient.data
        return self._value.grad

    @property
    def train_count(self) -> int:
        """
        Return the number of backward passes accumulated since the last clear.
        """
        return self._value.train_count

    def count_up(self) -> None:
        """
        Record one more backward pass accumulated into `grad`.
        """
        self._value.count_up()

    def reduce_gradient(self) -> bool:
        """
        Average the gradient over the accumulated backward passes.

        Returns
        -------
        bool
            True if the gradient was divided, False if nothing accumulated.
        """
        n = self._value.train_count
        if n > 0:
            self.grad[...] /= n
            return True
        return False

    def clear_gradient(self) -> None:
        """
        Zero the gradient buffer and reset the accumulation counter.
        """
        self.grad.fill(0)
        self._value.train_count = 0

    def __repr__(self) -> str:
        return f"Parameter(name={self.name!r}, shape={self._value.shape})"
