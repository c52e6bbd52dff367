"""
Elementwise arithmetic functions.

Each binary operation comes in up to three forms:

- tensor op tensor (`Add`, `Sub`, `Mul`, `Div`): both operands must have the
  same shape and batch count, and both receive gradient.
- tensor op constant (`AddConst`, `SubConst`, `MulConst`, `DivConst`): the
  constant is a one-element tensor passed as the second input; it receives
  no gradient.
- constant op tensor (`ConstSub`, `ConstDiv`): the constant is the first
  input and the output is laid out like the second.

The functional wrappers (`add`, `sub`, `mul`, `div`, `neg`) pick the form
from the operand types, lifting Python/NumPy scalars to constant tensors.
Each wrapper call builds a fresh Function instance.
"""

from __future__ import annotations

from typing import Any, Union

import numpy as np

from ...domain._errors import ShapeMismatchError
from .._function import DualInputFunction, SingleInputFunction
from ..tensor._tensor import Tensor

Operand = Union[Tensor, int, float, np.integer, np.floating]


def _check_same_layout(name: str, a: Tensor, b: Tensor) -> None:
    if a.shape != b.shape:
        raise ShapeMismatchError(
            f"{name}: shape mismatch {a.shape} vs {b.shape}",
            expected=a.shape,
            actual=b.shape,
        )
    if a.batch_count != b.batch_count:
        raise ShapeMismatchError(
            f"{name}: batch_count mismatch {a.batch_count} vs {b.batch_count}",
            expected=a.batch_count,
            actual=b.batch_count,
        )


def _check_constant(name: str, c: Tensor) -> None:
    if c.size != 1:
        raise ShapeMismatchError(
            f"{name}: constant operand must hold exactly one value, got {c.size}",
            expected=1,
            actual=c.size,
        )


def as_constant(value: Any, like: Tensor) -> Tensor:
    """
    Lift a scalar to a one-element leaf tensor with `like`'s dtype.

    Parameters
    ----------
    value : scalar or Tensor
        The constant. A Tensor is returned unchanged after its size is
        checked.
    like : Tensor
        Tensor whose precision the constant adopts.

    Returns
    -------
    Tensor
        A leaf tensor of shape `(1,)`.

    Raises
    ------
    ShapeMismatchError
        If `value` holds more than one element.
    """
    if isinstance(value, Tensor):
        _check_constant("constant", value)
        return value
    arr = np.asarray(value)
    if arr.size != 1:
        raise ShapeMismatchError(
            f"constant operand must hold exactly one value, got {arr.size}",
            expected=1,
            actual=arr.size,
        )
    return Tensor(arr.reshape(1), shape=(1,), name="Const", precision=like.dtype)


# ----------------------------------------------------------------------
# Addition
# ----------------------------------------------------------------------
class Add(DualInputFunction):
    """
    Elementwise `a + b`.
    """

    def dual_forward(self, a: Tensor, b: Tensor) -> np.ndarray:
        _check_same_layout(self.name, a, b)
        return a.data + b.data

    def dual_backward(self, y: Tensor, a: Tensor, b: Tensor) -> None:
        a._accumulate_grad_(y.grad)
        b._accumulate_grad_(y.grad)


class AddConst(DualInputFunction):
    """
    `a + c` for a one-element constant `c`.
    """

    def dual_forward(self, a: Tensor, c: Tensor) -> np.ndarray:
        _check_constant(self.name, c)
        return a.data + c.data[0]

    def dual_backward(self, y: Tensor, a: Tensor, c: Tensor) -> None:
        a._accumulate_grad_(y.grad)


# ----------------------------------------------------------------------
# Subtraction
# ----------------------------------------------------------------------
class Sub(DualInputFunction):
    """
    Elementwise `a - b`.
    """

    def dual_forward(self, a: Tensor, b: Tensor) -> np.ndarray:
        _check_same_layout(self.name, a, b)
        return a.data - b.data

    def dual_backward(self, y: Tensor, a: Tensor, b: Tensor) -> None:
        a._accumulate_grad_(y.grad)
        b._accumulate_grad_(-y.grad)


class SubConst(DualInputFunction):
    """
    `a - c` for a one-element constant `c`.
    """

    def dual_forward(self, a: Tensor, c: Tensor) -> np.ndarray:
        _check_constant(self.name, c)
        return a.data - c.data[0]

    def dual_backward(self, y: Tensor, a: Tensor, c: Tensor) -> None:
        a._accumulate_grad_(y.grad)


class ConstSub(DualInputFunction):
    """
    `c - b` for a one-element constant `c` (first input).
    """

    def dual_forward(self, c: Tensor, b: Tensor) -> Tensor:
        _check_constant(self.name, c)
        return self._make_output(c.data[0] - b.data, b)

    def dual_backward(self, y: Tensor, c: Tensor, b: Tensor) -> None:
        b._accumulate_grad_(-y.grad)


# ----------------------------------------------------------------------
# Multiplication
# ----------------------------------------------------------------------
class Mul(DualInputFunction):
    """
    Elementwise `a * b`.
    """

    def dual_forward(self, a: Tensor, b: Tensor) -> np.ndarray:
        _check_same_layout(self.name, a, b)
        return a.data * b.data

    def dual_backward(self, y: Tensor, a: Tensor, b: Tensor) -> None:
        a._accumulate_grad_(b.data * y.grad)
        b._accumulate_grad_(a.data * y.grad)


class MulConst(DualInputFunction):
    """
    `a * c` for a one-element constant `c`.
    """

    def dual_forward(self, a: Tensor, c: Tensor) -> np.ndarray:
        _check_constant(self.name, c)
        return a.data * c.data[0]

    def dual_backward(self, y: Tensor, a: Tensor, c: Tensor) -> None:
        a._accumulate_grad_(c.data[0] * y.grad)


# ----------------------------------------------------------------------
# Division
# ----------------------------------------------------------------------
class Div(DualInputFunction):
    """
    Elementwise `a / b`.

    Division by zero follows IEEE semantics (inf/nan), as NumPy does.
    """

    def dual_forward(self, a: Tensor, b: Tensor) -> np.ndarray:
        _check_same_layout(self.name, a, b)
        return a.data / b.data

    def dual_backward(self, y: Tensor, a: Tensor, b: Tensor) -> None:
        a._accumulate_grad_(y.grad / b.data)
        b._accumulate_grad_(-y.grad * a.data / (b.data * b.data))


class DivConst(DualInputFunction):
    """
    `a / c` for a one-element constant `c`.
    """

    def dual_forward(self, a: Tensor, c: Tensor) -> np.ndarray:
        _check_constant(self.name, c)
        return a.data / c.data[0]

    def dual_backward(self, y: Tensor, a: Tensor, c: Tensor) -> None:
        a._accumulate_grad_(y.grad / c.data[0])


class ConstDiv(DualInputFunction):
    """
    `c / b` for a one-element constant `c` (first input).
    """

    def dual_forward(self, c: Tensor, b: Tensor) -> Tensor:
        _check_constant(self.name, c)
        return self._make_output(c.data[0] / b.data, b)

    def dual_backward(self, y: Tensor, c: Tensor, b: Tensor) -> None:
        b._accumulate_grad_(-c.data[0] * y.grad / (b.data * b.data))


# ----------------------------------------------------------------------
# Negation
# ----------------------------------------------------------------------
class Neg(SingleInputFunction):
    """
    Elementwise `-x`.
    """

    def single_forward(self, x: Tensor) -> np.ndarray:
        return -x.data

    def single_backward(self, y: Tensor, x: Tensor) -> None:
        x._accumulate_grad_(-y.grad)


# ----------------------------------------------------------------------
# Functional wrappers
# ----------------------------------------------------------------------
def _require_tensor(op: str, a: Any, b: Any) -> None:
    if not isinstance(a, Tensor) and not isinstance(b, Tensor):
        raise TypeError(
            f"{op} expects at least one Tensor operand, got {type(a)!r} and {type(b)!r}"
        )


def add(a: Operand, b: Operand) -> Tensor:
    """
    Return `a + b`, recording the operation in the graph.

    Parameters
    ----------
    a, b : Tensor or scalar
        At least one operand must be a Tensor. Two tensors must share shape
        and batch count.

    Returns
    -------
    Tensor
        Output tensor produced by a fresh `Add` or `AddConst`.
    """
    _require_tensor("add", a, b)
    if isinstance(a, Tensor) and isinstance(b, Tensor):
        return Add()(a, b)
    if isinstance(a, Tensor):
        return AddConst()(a, as_constant(b, a))
    return AddConst()(b, as_constant(a, b))


def sub(a: Operand, b: Operand) -> Tensor:
    """
    Return `a - b`, recording the operation in the graph.
    """
    _require_tensor("sub", a, b)
    if isinstance(a, Tensor) and isinstance(b, Tensor):
        return Sub()(a, b)
    if isinstance(a, Tensor):
        return SubConst()(a, as_constant(b, a))
    return ConstSub()(as_constant(a, b), b)


def mul(a: Operand, b: Operand) -> Tensor:
    """
    Return `a * b`, recording the operation in the graph.
    """
    _require_tensor("mul", a, b)
    if isinstance(a, Tensor) and isinstance(b, Tensor):
        return Mul()(a, b)
    if isinstance(a, Tensor):
        return MulConst()(a, as_constant(b, a))
    return MulConst()(b, as_constant(a, b))


def div(a: Operand, b: Operand) -> Tensor:
    """
    Return `a / b`, recording the operation in the graph.
    """
    _require_tensor("div", a, b)
    if isinstance(a, Tensor) and isinstance(b, Tensor):
        return Div()(a, b)
    if isinstance(a, Tensor):
        return DivConst()(a, as_constant(b, a))
    return ConstDiv()(as_constant(a, b), b)


def neg(x: Tensor) -> Tensor:
    """
    Return `-x`, recording the operation in the graph.
    """
    return Neg()(x)
