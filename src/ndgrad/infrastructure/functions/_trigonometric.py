"""
Elementwise trigonometric functions.
"""

from __future__ import annotations

import numpy as np

from .._function import SingleInputFunction
from ..tensor._tensor import Tensor


class Sin(SingleInputFunction):
    """
    Elementwise sine.

    Backward:

        d(sin(x))/dx = cos(x)
    """

    def single_forward(self, x: Tensor) -> np.ndarray:
        return np.sin(x.data)

    def single_backward(self, y: Tensor, x: Tensor) -> None:
        x._accumulate_grad_(np.cos(x.data) * y.grad)


class Cos(SingleInputFunction):
    """
    Elementwise cosine.

    Backward:

        d(cos(x))/dx = -sin(x)
    """

    def single_forward(self, x: Tensor) -> np.ndarray:
        return np.cos(x.data)

    def single_backward(self, y: Tensor, x: Tensor) -> None:
        x._accumulate_grad_(-np.sin(x.data) * y.grad)


class ArcTan(SingleInputFunction):
    """
    Elementwise arctangent.

    Backward:

        d(arctan(x))/dx = 1 / (1 + x^2)
    """

    def single_forward(self, x: Tensor) -> np.ndarray:
        return np.arctan(x.data)

    def single_backward(self, y: Tensor, x: Tensor) -> None:
        x._accumulate_grad_(y.grad / (x.data * x.data + 1))


def sin(x: Tensor) -> Tensor:
    """
    Return `sin(x)` using a fresh `Sin` function.
    """
    return Sin()(x)


def cos(x: Tensor) -> Tensor:
    """
    Return `cos(x)` using a fresh `Cos` function.
    """
    return Cos()(x)


def arctan(x: Tensor) -> Tensor:
    """
    Return `arctan(x)` using a fresh `ArcTan` function.
    """
    return ArcTan()(x)
