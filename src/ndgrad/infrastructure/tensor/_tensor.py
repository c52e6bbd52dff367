"""
Concrete Tensor implementation (NumPy backend).

This module provides the batched `Tensor` used throughout ndgrad. A tensor
stores `batch_count` samples of a per-sample `shape` in one flat, row-major
NumPy buffer, and keeps a second buffer of the same size for the gradient.

Besides the buffers, each tensor carries the autograd bookkeeping consulted
by the backward traversal:

- `producer`: the Function instance whose forward created the tensor, or
  None for leaves (external inputs, parameters, structural-op results).
- `use_count`: forward consumptions not yet matched by a backward visit.
- `train_count`: backward passes accumulated into `grad` since the last
  `clear_gradient()`.

Design notes
------------
- Gradients are dense buffers owned by the tensor and are *accumulated*
  (added to) by Functions; nothing in the core overwrites them except
  `clear_gradient()` and the seed written by `backward()`.
- Arithmetic is exposed as explicit methods (`add`, `mul`, ...) that build a
  fresh Function per call; the Python operators are thin aliases of those
  methods.
- Shape-changing and batch-related structural operations live in
  `TensorShapeAndIndexingMixin`.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence, Union

import numpy as np
from typing_extensions import Self

from ...domain._errors import ShapeMismatchError
from ...domain._precision import Precision, as_real_array
from ...domain._tensor import ITensor
from .._autograd import backward_graph
from ._shape_and_indexing import TensorShapeAndIndexingMixin, shape_length
from ._tensor_context import Context

Number = Union[int, float, np.integer, np.floating]


class Tensor(TensorShapeAndIndexingMixin, ITensor):
    """
    Batched N-dimensional tensor with paired value and gradient buffers.

    Parameters
    ----------
    data : array-like
        Values. Without `shape`, the shape is inferred from the array's
        rank/extents (with `batch_count > 1` the leading axis is taken as the
        batch axis). With `shape`, `data` may be flat or nested but must hold
        exactly `prod(shape) * batch_count` values.
    shape : Sequence[int], optional
        Per-sample shape (batch dimension excluded). Extents must be positive;
        `()` denotes one scalar per sample.
    batch_count : int, optional
        Number of samples stacked in `data`. Defaults to 1.
    producer : Function, optional
        The Function that produced this tensor. Set internally by
        `Function.forward`.
    name : str, optional
        Display name. Defaults to "Tensor".
    precision : Precision | str | dtype-like, optional
        Element precision. Defaults to the configured precision.

    Raises
    ------
    ShapeMismatchError
        If the number of values disagrees with `shape` and `batch_count`, or
        an extent is not positive.
    ValueError
        If `batch_count < 1`.
    """

    # Make NumPy defer to our reflected operators (np.float32(2) * t).
    __array_ufunc__ = None

    def __init__(
        self,
        data: Any,
        shape: Optional[Sequence[int]] = None,
        batch_count: int = 1,
        *,
        producer: Optional[Any] = None,
        name: str = "Tensor",
        precision: Optional[Union[Precision, str, Any]] = None,
    ) -> None:
        """
        Construct a tensor from values, inferring or validating its layout.
        """
        if isinstance(data, Tensor):
            raise TypeError("Use Tensor.clone() to copy a Tensor")

        batch_count = int(batch_count)
        if batch_count < 1:
            raise ValueError(f"batch_count must be >= 1, got {batch_count}")

        arr = as_real_array(data, precision)

        if shape is None:
            if batch_count == 1:
                resolved = tuple(int(d) for d in arr.shape)
            else:
                if arr.ndim == 0 or arr.shape[0] != batch_count:
                    raise ShapeMismatchError(
                        f"Cannot infer a per-sample shape for batch_count={batch_count} "
                        f"from array of shape {arr.shape}",
                        expected=batch_count,
                        actual=arr.shape,
                    )
                resolved = tuple(int(d) for d in arr.shape[1:])
        else:
            resolved = tuple(int(d) for d in shape)

        if any(d <= 0 for d in resolved):
            raise ShapeMismatchError(
                f"Shape extents must be positive, got {resolved}", actual=resolved
            )

        expected = shape_length(resolved) * batch_count
        if arr.size != expected:
            raise ShapeMismatchError(
                f"{arr.size} values cannot fill shape {resolved} x {batch_count} batch",
                expected=expected,
                actual=arr.size,
            )

        self._shape: tuple[int, ...] = resolved
        self._batch_count: int = batch_count
        self._data: np.ndarray = arr.reshape(-1)
        self._grad: np.ndarray = np.zeros_like(self._data)

        self.name: str = name
        self.producer: Optional[Any] = producer
        self.use_count: int = 0
        self.train_count: int = 0
        self._ctx: Optional[Context] = None

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------
    @classmethod
    def zeros(
        cls,
        shape: Sequence[int],
        batch_count: int = 1,
        *,
        precision: Optional[Union[Precision, str, Any]] = None,
    ) -> "Tensor":
        """
        Create a zero-filled tensor.

        Parameters
        ----------
        shape : Sequence[int]
            Per-sample shape.
        batch_count : int, optional
            Number of samples. Defaults to 1.
        precision : Precision | str | dtype-like, optional
            Element precision. Defaults to the configured precision.

        Returns
        -------
        Tensor
            A leaf tensor of zeros.
        """
        shape = tuple(int(d) for d in shape)
        n = shape_length(shape) * int(batch_count) if all(d > 0 for d in shape) else 0
        return cls(np.zeros(n), shape=shape, batch_count=batch_count, precision=precision)

    @classmethod
    def ones(
        cls,
        shape: Sequence[int],
        batch_count: int = 1,
        *,
        precision: Optional[Union[Precision, str, Any]] = None,
    ) -> "Tensor":
        """
        Create a tensor filled with ones.
        """
        t = cls.zeros(shape, batch_count, precision=precision)
        t._data.fill(1)
        return t

    @classmethod
    def zeros_like(cls, other: "Tensor") -> "Tensor":
        """
        Create a zero-filled leaf tensor with `other`'s layout and dtype.
        """
        return cls.zeros(other.shape, other.batch_count, precision=other.dtype)

    # ------------------------------------------------------------------
    # Layout and buffers
    # ------------------------------------------------------------------
    @property
    def shape(self) -> tuple[int, ...]:
        """
        Return the per-sample shape (batch dimension excluded).
        """
        return self._shape

    @property
    def batch_count(self) -> int:
        """
        Return the number of samples stacked in the buffers.
        """
        return self._batch_count

    @property
    def length(self) -> int:
        """
        Return the number of elements per sample.
        """
        return shape_length(self._shape)

    @property
    def ndim(self) -> int:
        """
        Return the per-sample rank.
        """
        return len(self._shape)

    @property
    def size(self) -> int:
        """
        Return the total element count (`length * batch_count`).
        """
        return self._data.size

    @property
    def dtype(self) -> np.dtype:
        """
        Return the element dtype.
        """
        return self._data.dtype

    @property
    def precision(self) -> Precision:
        """
        Return the element precision.
        """
        return Precision.from_any(self._data.dtype)

    @property
    def data(self) -> np.ndarray:
        """
        Return the live flat value buffer.

        Returns
        -------
        np.ndarray
            1-D array of `length * batch_count` elements. In-place edits are
            visible to the tensor.
        """
        return self._data

    @data.setter
    def data(self, values: Any) -> None:
        """
        Overwrite the values (e.g. an optimizer writing updated parameters).

        Parameters
        ----------
        values : array-like
            Exactly `length * batch_count` values, flat or nested.

        Raises
        ------
        ShapeMismatchError
            If the value count differs from the buffer size.
        """
        arr = np.asarray(values, dtype=self.dtype)
        if arr.size != self._data.size:
            raise ShapeMismatchError(
                f"Cannot assign {arr.size} values to a tensor of size {self._data.size}",
                expected=self._data.size,
                actual=arr.size,
            )
        np.copyto(self._data, arr.reshape(-1))

    @property
    def grad(self) -> np.ndarray:
        """
        Return the live flat gradient buffer (same size as `data`).
        """
        return self._grad

    @grad.setter
    def grad(self, values: Any) -> None:
        """
        Overwrite the gradient buffer (e.g. a synthetic gradient seed).

        Raises
        ------
        ShapeMismatchError
            If the value count differs from the buffer size.
        """
        arr = np.asarray(values, dtype=self.dtype)
        if arr.size != self._grad.size:
            raise ShapeMismatchError(
                f"Cannot assign {arr.size} gradient values to a tensor of size {self._grad.size}",
                expected=self._grad.size,
                actual=arr.size,
            )
        np.copyto(self._grad, arr.reshape(-1))

    def _accumulate_grad_(self, g: Any) -> None:
        """
        In-place add a gradient contribution into `grad`.

        Parameters
        ----------
        g : array-like or scalar
            Contribution broadcastable to the flat gradient buffer.
        """
        g = np.asarray(g, dtype=self.dtype)
        if g.ndim > 0 and g.size != self._grad.size:
            raise ShapeMismatchError(
                f"Gradient contribution of size {g.size} does not match tensor size {self._grad.size}",
                expected=self._grad.size,
                actual=g.size,
            )
        self._grad += g.reshape(-1) if g.ndim > 0 else g

    def to_numpy(self) -> np.ndarray:
        """
        Return a copy of the values shaped `(batch_count, *shape)`.
        """
        return self._data.reshape((self._batch_count,) + self._shape).copy()

    def grad_to_numpy(self) -> np.ndarray:
        """
        Return a copy of the gradient shaped `(batch_count, *shape)`.
        """
        return self._grad.reshape((self._batch_count,) + self._shape).copy()

    # ------------------------------------------------------------------
    # Graph bookkeeping
    # ------------------------------------------------------------------
    def _set_ctx(self, ctx: Optional[Context]) -> None:
        """
        Attach the forward-call record this tensor was produced by.

        Notes
        -----
        Internal hook used by `Function.forward`.
        """
        self._ctx = ctx

    def _get_ctx(self) -> Optional[Context]:
        """
        Return the forward-call record this tensor was produced by, if any.
        """
        return self._ctx

    @property
    def is_leaf(self) -> bool:
        """
        Return True if the tensor has no producer.
        """
        return self.producer is None

    def cut_graph(self) -> None:
        """
        Detach this tensor from its producer.

        Later traversals stop here, so history upstream of this point is not
        walked again. Typically called once a segment's backward pass has run
        and its gradients have been consumed.
        """
        self.producer = None
        self._ctx = None

    def backward(self) -> None:
        """
        Seed `grad` with ones and propagate gradients to every upstream tensor.

        Notes
        -----
        The unit seed is the derivative of a scalar loss with respect to
        itself; for non-scalar tensors it is an elementwise unit seed. To
        start from a custom gradient, assign `grad` and call
        `backward_graph(tensor)` instead.
        """
        self._grad.fill(1)
        backward_graph(self)

    def count_up(self) -> None:
        """
        Record one more backward pass accumulated into `grad`.
        """
        self.train_count += 1

    def reduce_gradient(self) -> bool:
        """
        Average the accumulated gradient over `train_count`.

        Returns
        -------
        bool
            True if `grad` was divided by `train_count`, False if
            `train_count` is 0 (gradient left untouched).
        """
        if self.train_count > 0:
            self._grad /= self.train_count
            return True
        return False

    def clear_gradient(self) -> None:
        """
        Replace `grad` with zeros and reset `train_count`.
        """
        self._grad = np.zeros_like(self._data)
        self.train_count = 0

    def clone(self) -> Self:
        """
        Return a deep copy of this tensor.

        Returns
        -------
        Tensor
            A tensor with copied data and grad buffers and the same shape,
            batch count, producer, use count, train count and name.
        """
        out = self.__class__(
            self._data.copy(),
            shape=self._shape,
            batch_count=self._batch_count,
            producer=self.producer,
            name=self.name,
            precision=self.dtype,
        )
        out._grad = self._grad.copy()
        out.use_count = self.use_count
        out.train_count = self.train_count
        out._ctx = self._ctx
        return out

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------
    def size_string(self) -> str:
        """
        Render the layout as e.g. "[2,3]" or "[2,3]x4batch".
        """
        s = "[" + ",".join(str(d) for d in self._shape) + "]"
        if self._batch_count > 1:
            s += f"x{self._batch_count}batch"
        return s

    def __repr__(self) -> str:
        """
        Return a short description of the tensor's layout and dtype.
        """
        return (
            f"Tensor(name={self.name!r}, shape={self._shape}, "
            f"batch_count={self._batch_count}, dtype={self.dtype})"
        )

    def __str__(self) -> str:
        """
        Return the values, one bracketed block per sample.
        """
        values = self._data.reshape((self._batch_count,) + self._shape)
        if self._batch_count == 1:
            return np.array2string(values[0], precision=8)
        return ",\n".join(
            "{" + np.array2string(sample, precision=8) + "}" for sample in values
        )

    # ------------------------------------------------------------------
    # Arithmetic (each call builds a fresh Function and records graph edges)
    # ------------------------------------------------------------------
    def add(self, other: Union["Tensor", Number]) -> "Tensor":
        """
        Elementwise `self + other` (tensor of the same layout, or scalar).
        """
        from ..functions import add

        return add(self, other)

    def sub(self, other: Union["Tensor", Number]) -> "Tensor":
        """
        Elementwise `self - other`.
        """
        from ..functions import sub

        return sub(self, other)

    def rsub(self, other: Number) -> "Tensor":
        """
        Elementwise `other - self` for a scalar `other`.
        """
        from ..functions import sub

        return sub(other, self)

    def mul(self, other: Union["Tensor", Number]) -> "Tensor":
        """
        Elementwise `self * other`.
        """
        from ..functions import mul

        return mul(self, other)

    def div(self, other: Union["Tensor", Number]) -> "Tensor":
        """
        Elementwise `self / other`.
        """
        from ..functions import div

        return div(self, other)

    def rdiv(self, other: Number) -> "Tensor":
        """
        Elementwise `other / self` for a scalar `other`.
        """
        from ..functions import div

        return div(other, self)

    def neg(self) -> "Tensor":
        """
        Elementwise negation.
        """
        from ..functions import neg

        return neg(self)

    def __add__(self, other: Union["Tensor", Number]) -> "Tensor":
        return self.add(other)

    def __radd__(self, other: Number) -> "Tensor":
        return self.add(other)

    def __sub__(self, other: Union["Tensor", Number]) -> "Tensor":
        return self.sub(other)

    def __rsub__(self, other: Number) -> "Tensor":
        return self.rsub(other)

    def __mul__(self, other: Union["Tensor", Number]) -> "Tensor":
        return self.mul(other)

    def __rmul__(self, other: Number) -> "Tensor":
        return self.mul(other)

    def __truediv__(self, other: Union["Tensor", Number]) -> "Tensor":
        return self.div(other)

    def __rtruediv__(self, other: Number) -> "Tensor":
        return self.rdiv(other)

    def __neg__(self) -> "Tensor":
        return self.neg()
