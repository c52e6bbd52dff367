"""
Tensor shape, indexing, and structural ops mixin (NumPy backend).

This module defines `TensorShapeAndIndexingMixin`, the mixin that implements
the batch-aware shape algebra of the concrete `Tensor`:

- element indexing (`get_local_index`, `get_dimensions_index`, `t[b, i, j]`)
- in-place reshape with one inferable wildcard dimension
- axis-reduce sum, split and concatenate, applied per batch to both the
  value and the gradient buffer
- batch stacking (`from_batch`) and its inverse (`divide_batches`)

Design notes
------------
- To avoid circular imports, the implementation does not import `Tensor`
  directly; new tensors are constructed via `self.__class__` (instance
  methods) or `cls` / `a.__class__` (class and static methods).
- Buffers are flat; every bulk operation views them as
  `(batch_count, *shape)` and works with NumPy along `axis + 1`, so the batch
  axis is never touched.
- Structural results are leaves: they carry copied data and grad but no
  producer. `reshape` is the exception, since it only changes the shape of
  the tensor it is called on and keeps its graph linkage.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence, Union

import numpy as np

from ...domain._errors import AxisError, ReshapeError, ShapeMismatchError

WILDCARD = -1
"""Reshape marker meaning "infer this dimension"."""


def shape_length(shape: Sequence[int]) -> int:
    """
    Return the number of elements described by a per-sample shape.

    Parameters
    ----------
    shape : Sequence[int]
        Per-sample shape. `()` describes a single scalar.

    Returns
    -------
    int
        Product of the extents (1 for `()`).
    """
    n = 1
    for d in shape:
        n *= int(d)
    return n


def _normalize_axis(axis: Any, ndim: int) -> int:
    try:
        a = int(axis)
    except (TypeError, ValueError) as e:
        raise AxisError(axis, ndim, "axis must be an integer") from e
    if a < 0:
        a += ndim
    if a < 0 or a >= ndim:
        raise AxisError(axis, ndim, "out of range")
    return a


def _resolve_reshape(target: tuple[int, ...], length: int) -> tuple[int, ...]:
    wildcards = [i for i, d in enumerate(target) if d == WILDCARD]
    if len(wildcards) > 1:
        raise ReshapeError(target, length, "more than one wildcard dimension")
    if any(d != WILDCARD and d <= 0 for d in target):
        raise ReshapeError(target, length, "extents must be positive")

    known = shape_length(d for d in target if d != WILDCARD)
    if wildcards:
        if length % known != 0:
            raise ReshapeError(
                target, length, "remaining dimensions do not evenly divide the length"
            )
        resolved = list(target)
        resolved[wildcards[0]] = length // known
        return tuple(resolved)

    if known != length:
        raise ShapeMismatchError(
            f"Cannot reshape length {length} to {target}", expected=length, actual=known
        )
    return target


class TensorShapeAndIndexingMixin:
    """
    Shape and indexing operations for the concrete Tensor implementation.

    Notes
    -----
    Methods assume the host class provides `shape`, `batch_count`, `length`,
    `dtype`, `name`, the `_shape`, `_data` and `_grad` attributes and a
    constructor accepting `(data, shape=..., batch_count=..., name=...,
    precision=...)`.
    """

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _batched(self, buffer: np.ndarray) -> np.ndarray:
        return buffer.reshape((self.batch_count,) + self.shape)

    def _new_like(self, data: np.ndarray, grad: np.ndarray, shape: tuple[int, ...]):
        out = self.__class__(
            data.reshape(-1),
            shape=shape,
            batch_count=self.batch_count,
            name=self.name,
            precision=self.dtype,
        )
        out._grad = np.ascontiguousarray(grad, dtype=out.dtype).reshape(-1).copy()
        return out

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------
    def get_local_index(self, batch_index: int, *indices: int) -> int:
        """
        Convert a (batch, per-dimension) index into a flat buffer offset.

        Parameters
        ----------
        batch_index : int
            Sample index in `[0, batch_count)`.
        *indices : int
            One index per dimension of `shape` (a single tuple/list is also
            accepted).

        Returns
        -------
        int
            Row-major offset into `data` / `grad`.

        Raises
        ------
        IndexError
            If the number of indices differs from the rank or any index is out
            of range.
        """
        if len(indices) == 1 and isinstance(indices[0], (tuple, list)):
            indices = tuple(indices[0])
        if len(indices) != len(self.shape):
            raise IndexError(
                f"Expected {len(self.shape)} indices for shape {self.shape}, got {len(indices)}"
            )
        if not 0 <= batch_index < self.batch_count:
            raise IndexError(
                f"batch index {batch_index} out of range for batch_count={self.batch_count}"
            )

        index = 0
        stride = 1
        for dim, i in zip(reversed(self.shape), reversed(indices)):
            if not 0 <= i < dim:
                raise IndexError(f"index {tuple(indices)} out of range for shape {self.shape}")
            index += int(i) * stride
            stride *= dim
        return batch_index * self.length + index

    def get_dimensions_index(self, index: int) -> tuple[int, ...]:
        """
        Convert a flat buffer offset into a per-dimension index.

        The batch part of the offset is discarded; use
        `index // tensor.length` to recover it.

        Parameters
        ----------
        index : int
            Offset into `data` / `grad`.

        Returns
        -------
        tuple[int, ...]
            One index per dimension of `shape`.

        Raises
        ------
        IndexError
            If `index` is outside the buffer.
        """
        total = self.length * self.batch_count
        if not 0 <= index < total:
            raise IndexError(f"flat index {index} out of range for size {total}")

        index %= self.length
        dims = [0] * len(self.shape)
        for k in range(len(self.shape) - 1, -1, -1):
            dims[k] = index % self.shape[k]
            index //= self.shape[k]
        return tuple(dims)

    def _key_to_offset(self, key: Any) -> int:
        if not isinstance(key, tuple):
            key = (key,)
        if len(key) == 0:
            raise IndexError("Expected at least a batch index")
        return self.get_local_index(int(key[0]), *(int(k) for k in key[1:]))

    def __getitem__(self, key: Any) -> np.floating:
        """
        Read one value as `t[batch, i, j, ...]`.

        Notes
        -----
        This is a convenience/debug path; bulk numeric code should work on
        `data` directly.
        """
        return self._data[self._key_to_offset(key)]

    def __setitem__(self, key: Any, value: Any) -> None:
        """
        Write one value as `t[batch, i, j, ...] = value`.
        """
        self._data[self._key_to_offset(key)] = value

    # ------------------------------------------------------------------
    # Reshape
    # ------------------------------------------------------------------
    def reshape(self, *shape: Union[int, Sequence[int]]):
        """
        Change the per-sample shape in place.

        Parameters
        ----------
        *shape : int or a single sequence of int
            New per-sample shape. Exactly one extent may be `-1`, meaning
            "infer from the element count".

        Returns
        -------
        Tensor
            `self`, for chaining.

        Raises
        ------
        ReshapeError
            More than one wildcard, non-positive extents, or explicit
            extents that do not evenly divide `length`.
        ShapeMismatchError
            Without a wildcard, when `prod(shape) != length`.

        Notes
        -----
        Data, grad, batch count and producer are untouched, so the tensor
        keeps its place in the graph.
        """
        if len(shape) == 1 and isinstance(shape[0], (tuple, list)):
            shape = tuple(shape[0])
        target = tuple(int(d) for d in shape)
        self._shape = _resolve_reshape(target, self.length)
        return self

    # ------------------------------------------------------------------
    # Axis-reduce sum
    # ------------------------------------------------------------------
    def sum(
        self,
        axis: Optional[Union[int, Iterable[int]]] = None,
        keepdims: bool = False,
    ):
        """
        Sum over one or more per-sample axes, independently for each batch.

        Parameters
        ----------
        axis : int or Iterable[int], optional
            Axes to reduce. Negative axes count from the end. Defaults to all
            axes (one scalar per sample).
        keepdims : bool, optional
            Reinsert the reduced axes as singleton dimensions so the rank is
            preserved. Defaults to False.

        Returns
        -------
        Tensor
            A leaf tensor holding the summed data and the summed gradient.

        Raises
        ------
        AxisError
            If an axis repeats or is out of range.

        Notes
        -----
        Axes are reduced one at a time in ascending order, each step removing
        one dimension.
        """
        ndim = len(self.shape)
        if axis is None:
            axes = list(range(ndim))
        elif isinstance(axis, (int, np.integer)):
            axes = [_normalize_axis(axis, ndim)]
        else:
            axes = [_normalize_axis(a, ndim) for a in axis]

        if len(set(axes)) != len(axes):
            raise AxisError(axis, ndim, "duplicate axes")
        axes.sort()

        data = self._batched(self._data)
        grad = self._batched(self._grad)
        for removed, a in enumerate(axes):
            data = data.sum(axis=a - removed + 1)
            grad = grad.sum(axis=a - removed + 1)

        if keepdims:
            out_shape = tuple(1 if d in axes else self.shape[d] for d in range(ndim))
        else:
            out_shape = tuple(int(d) for d in data.shape[1:])
        return self._new_like(data, grad, out_shape)

    # ------------------------------------------------------------------
    # Split / concatenate
    # ------------------------------------------------------------------
    def split(self, indices: Union[int, Sequence[int]], axis: int = 0) -> list:
        """
        Partition the tensor into contiguous pieces along a per-sample axis.

        Parameters
        ----------
        indices : int or Sequence[int]
            Split point(s) along `axis`, strictly ascending and inside
            `(0, shape[axis])`. `k` points give `k + 1` pieces.
        axis : int, optional
            Per-sample axis to split. Defaults to 0.

        Returns
        -------
        list[Tensor]
            Leaf tensors with the data and grad slices of every batch.

        Raises
        ------
        AxisError
            If `axis` is out of range.
        ShapeMismatchError
            If the split points are empty, not ascending, or out of range.
        """
        ndim = len(self.shape)
        a = _normalize_axis(axis, ndim)
        points = [int(indices)] if isinstance(indices, (int, np.integer)) else [int(p) for p in indices]

        extent = self.shape[a]
        if not points:
            raise ShapeMismatchError("split requires at least one split point")
        previous = 0
        for p in points:
            if p <= previous or p >= extent:
                raise ShapeMismatchError(
                    f"Split points {points} must be strictly ascending inside (0, {extent})",
                    expected=extent,
                    actual=points,
                )
            previous = p

        data_parts = np.split(self._batched(self._data), points, axis=a + 1)
        grad_parts = np.split(self._batched(self._grad), points, axis=a + 1)
        return [
            self._new_like(d, g, tuple(int(x) for x in d.shape[1:]))
            for d, g in zip(data_parts, grad_parts)
        ]

    @staticmethod
    def concatenate(a, b, axis: int = 0):
        """
        Join two tensors along an existing per-sample axis.

        Parameters
        ----------
        a, b : Tensor
            Tensors with equal rank, equal batch counts, and equal extents on
            every axis except `axis`.
        axis : int, optional
            Per-sample axis to join along. Defaults to 0.

        Returns
        -------
        Tensor
            A leaf tensor whose data and grad are `a`'s followed by `b`'s
            along `axis`, per batch.

        Raises
        ------
        AxisError
            If `axis` is out of range.
        ShapeMismatchError
            If ranks, non-concatenated extents, or batch counts differ.
        """
        if len(a.shape) != len(b.shape):
            raise ShapeMismatchError(
                f"concatenate requires equal ranks, got {a.shape} and {b.shape}",
                expected=a.shape,
                actual=b.shape,
            )
        ax = _normalize_axis(axis, len(a.shape))
        for d in range(len(a.shape)):
            if d != ax and a.shape[d] != b.shape[d]:
                raise ShapeMismatchError(
                    f"concatenate shape mismatch on dim {d}: {a.shape} vs {b.shape}",
                    expected=a.shape,
                    actual=b.shape,
                )
        if a.batch_count != b.batch_count:
            raise ShapeMismatchError(
                f"concatenate batch mismatch: {a.batch_count} vs {b.batch_count}",
                expected=a.batch_count,
                actual=b.batch_count,
            )

        data = np.concatenate(
            [a._batched(a._data), b._batched(b._data).astype(a.dtype, copy=False)], axis=ax + 1
        )
        grad = np.concatenate(
            [a._batched(a._grad), b._batched(b._grad).astype(a.dtype, copy=False)], axis=ax + 1
        )
        return a._new_like(data, grad, tuple(int(x) for x in data.shape[1:]))

    # ------------------------------------------------------------------
    # Batch stacking
    # ------------------------------------------------------------------
    @classmethod
    def from_batch(cls, samples: Sequence[Any], *, precision: Optional[Any] = None):
        """
        Stack equally-shaped samples into one batched tensor.

        Parameters
        ----------
        samples : Sequence[Tensor | array-like]
            Samples in batch order. Tensors must have `batch_count == 1`;
            array-likes are converted with their own shape.
        precision : Precision | str | dtype-like, optional
            Element precision. Defaults to the first tensor sample's dtype, or
            the configured precision for array-likes.

        Returns
        -------
        Tensor
            A leaf tensor with `batch_count == len(samples)`.

        Raises
        ------
        ValueError
            If `samples` is empty.
        ShapeMismatchError
            If the samples disagree in shape or a tensor sample is batched.
        """
        if len(samples) == 0:
            raise ValueError("from_batch() requires at least one sample")

        arrays = []
        for i, s in enumerate(samples):
            if isinstance(s, TensorShapeAndIndexingMixin):
                if s.batch_count != 1:
                    raise ShapeMismatchError(
                        f"sample {i} is already batched (batch_count={s.batch_count})",
                        expected=1,
                        actual=s.batch_count,
                    )
                if precision is None:
                    precision = s.dtype
                arrays.append(s._data.reshape(s.shape))
            else:
                arrays.append(np.asarray(s))

        ref_shape = arrays[0].shape
        for i, arr in enumerate(arrays):
            if arr.shape != ref_shape:
                raise ShapeMismatchError(
                    f"from_batch sample {i} has shape {arr.shape}, expected {ref_shape}",
                    expected=ref_shape,
                    actual=arr.shape,
                )

        return cls(
            np.stack(arrays).reshape(-1),
            shape=ref_shape,
            batch_count=len(arrays),
            precision=precision,
        )

    def get_single(self, batch_index: int):
        """
        Extract one sample as a standalone tensor (data and grad copied).

        Raises
        ------
        IndexError
            If `batch_index` is out of range.
        """
        if not 0 <= batch_index < self.batch_count:
            raise IndexError(
                f"batch index {batch_index} out of range for batch_count={self.batch_count}"
            )
        window = slice(batch_index * self.length, (batch_index + 1) * self.length)
        out = self.__class__(
            self._data[window].copy(),
            shape=self.shape,
            name=self.name,
            precision=self.dtype,
        )
        out._grad = self._grad[window].copy()
        return out

    def divide_batches(self) -> list:
        """
        Split a batched tensor into one tensor per sample.

        Returns
        -------
        list[Tensor]
            `batch_count` leaf tensors in batch order.
        """
        return [self.get_single(i) for i in range(self.batch_count)]


# ----------------------------------------------------------------------
# Free-function forms
# ----------------------------------------------------------------------
def reduce_sum(tensor, axis=None, keepdims: bool = False):
    """
    Functional form of `Tensor.sum`.
    """
    return tensor.sum(axis=axis, keepdims=keepdims)


def split(tensor, indices, axis: int = 0) -> list:
    """
    Functional form of `Tensor.split`.
    """
    return tensor.split(indices, axis=axis)


def concatenate(a, b, axis: int = 0):
    """
    Functional form of `Tensor.concatenate`.
    """
    return TensorShapeAndIndexingMixin.concatenate(a, b, axis=axis)


def reshape(tensor, shape: Sequence[int]):
    """
    Return a reshaped clone of `tensor`, leaving the original untouched.
    """
    return tensor.clone().reshape(tuple(shape))


def divide_batches(tensor) -> list:
    """
    Functional form of `Tensor.divide_batches`.
    """
    return tensor.divide_batches()
