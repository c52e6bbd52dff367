"""
Shape-, axis- and graph-related exceptions for ndgrad.

This module defines the error taxonomy raised by tensor construction,
structural operations and the autograd machinery. Every error is raised
synchronously at the offending call, before any tensor is mutated where that
is feasible, and none of them is caught inside the library: they propagate to
the caller, which decides whether to abort a run or skip a batch.

The concrete classes also derive from the matching built-in exception
(`ValueError` / `RuntimeError`) so that generic handlers keep working.
"""

from __future__ import annotations

from typing import Any, Optional


class NdGradError(Exception):
    """
    Common base class for all ndgrad errors.

    Catching `NdGradError` catches every error raised by the library while
    leaving unrelated `ValueError` / `RuntimeError` instances alone.
    """


class ShapeMismatchError(NdGradError, ValueError):
    """
    Raised when rank, extent or batch-count preconditions are violated.

    Typical causes are elementwise operations on tensors of different shapes,
    concatenation along a non-matching axis, buffers whose size disagrees with
    `prod(shape) * batch_count`, or a reshape whose target size disagrees with
    the tensor's element count.

    Attributes
    ----------
    expected : Any
        The shape (or size) that the operation required, if known.
    actual : Any
        The shape (or size) that was supplied, if known.
    """

    def __init__(
        self, message: str, *, expected: Optional[Any] = None, actual: Optional[Any] = None
    ) -> None:
        """
        Initialize the ShapeMismatchError.

        Parameters
        ----------
        message : str
            Human-readable description of the mismatch.
        expected : Any, optional
            Shape or size the operation required.
        actual : Any, optional
            Shape or size that was supplied.
        """
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class ReshapeError(NdGradError, ValueError):
    """
    Raised when a reshape request is ambiguous or cannot be satisfied.

    This covers more than one wildcard (`-1`) dimension, non-positive
    extents, and explicit extents that do not evenly divide the tensor's
    per-sample element count.
    """

    def __init__(self, shape: tuple, length: int, reason: str) -> None:
        """
        Initialize the ReshapeError.

        Parameters
        ----------
        shape : tuple
            The requested target shape.
        length : int
            Per-sample element count of the tensor being reshaped.
        reason : str
            Short description of what is wrong with `shape`.
        """
        super().__init__(f"Cannot reshape length {length} to {shape}: {reason}.")
        self.shape = shape
        self.length = length


class AxisError(NdGradError, ValueError):
    """
    Raised for invalid axis arguments (duplicates or out-of-range indices).
    """

    def __init__(self, axis: Any, ndim: int, reason: str) -> None:
        """
        Initialize the AxisError.

        Parameters
        ----------
        axis : Any
            The offending axis or axis collection.
        ndim : int
            Rank of the per-sample shape the axis refers to.
        reason : str
            Short description of the failure.
        """
        super().__init__(f"Invalid axis {axis!r} for ndim={ndim}: {reason}.")
        self.axis = axis
        self.ndim = ndim


class GraphError(NdGradError, RuntimeError):
    """
    Raised when a Function is driven outside its forward/backward contract.

    Examples are calling `backward` on a Function that has no pending forward
    history, or passing the wrong number of inputs to `forward`.
    """


class DanglingGraphWarning(UserWarning):
    """
    Warning emitted when a backward pass leaves non-leaf tensors incomplete.

    A tensor consumed by an operation whose output never takes part in the
    backward pass keeps a positive use count, so traversal stops there and
    its producer is never visited. That truncation is intentional; the
    warning only makes it visible.
    """
