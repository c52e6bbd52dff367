"""
Batched tensor implementation and its structural operations.

Public API
----------
- ``Tensor``: batched value/gradient buffers with autograd bookkeeping
- ``Context``: record of one forward call on a Function
- ``TensorShapeAndIndexingMixin``: indexing and shape algebra used by Tensor
- free functions ``reduce_sum``, ``split``, ``concatenate``, ``reshape``,
  ``divide_batches`` and ``from_batch``
"""

from ._shape_and_indexing import (
    TensorShapeAndIndexingMixin,
    concatenate,
    divide_batches,
    reduce_sum,
    reshape,
    shape_length,
    split,
)
from ._tensor import Tensor
from ._tensor_context import Context

from_batch = Tensor.from_batch

__all__ = [
    Tensor.__name__,
    Context.__name__,
    TensorShapeAndIndexingMixin.__name__,
    reduce_sum.__name__,
    split.__name__,
    concatenate.__name__,
    reshape.__name__,
    divide_batches.__name__,
    shape_length.__name__,
    "from_batch",
]
