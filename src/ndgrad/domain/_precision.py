"""
Scalar element type (precision) definitions.

The scalar element of every ndgrad tensor is a NumPy floating scalar whose
width is chosen once per tensor: single precision (float32) or double
precision (float64). Arithmetic and comparison on elements are NumPy's own;
this module only names the two choices and converts native values into them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Union

import numpy as np


class Precision(Enum):
    """
    Enumeration of supported element precisions.

    Attributes
    ----------
    SINGLE : Precision
        32-bit IEEE float.
    DOUBLE : Precision
        64-bit IEEE float.
    """

    SINGLE = "single"
    DOUBLE = "double"

    @property
    def dtype(self) -> np.dtype:
        """
        Return the NumPy dtype backing this precision.

        Returns
        -------
        np.dtype
            `float32` for SINGLE, `float64` for DOUBLE.
        """
        return np.dtype(np.float32) if self is Precision.SINGLE else np.dtype(np.float64)

    @classmethod
    def from_any(cls, value: Union["Precision", str, Any]) -> "Precision":
        """
        Normalize a user-facing precision spelling.

        Parameters
        ----------
        value : Precision | str | dtype-like
            A `Precision`, one of the strings "single", "double", "float32",
            "float64", or anything `np.dtype` accepts that resolves to one of
            the two float widths.

        Returns
        -------
        Precision
            The matching enum member.

        Raises
        ------
        ValueError
            If the value does not denote float32 or float64.
        """
        if isinstance(value, Precision):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key in ("single", "float32", "f4"):
                return cls.SINGLE
            if key in ("double", "float64", "f8"):
                return cls.DOUBLE
            raise ValueError(f"Unsupported precision: {value!r}")
        try:
            dt = np.dtype(value)
        except TypeError as e:
            raise ValueError(f"Unsupported precision: {value!r}") from e
        if dt == np.float32:
            return cls.SINGLE
        if dt == np.float64:
            return cls.DOUBLE
        raise ValueError(f"Unsupported precision dtype: {dt}")


def _resolve(precision: Optional[Union[Precision, str, Any]]) -> Precision:
    if precision is None:
        from ._config import get_config

        return get_config().precision
    return Precision.from_any(precision)


def as_real_array(values: Any, precision: Optional[Union[Precision, str, Any]] = None) -> np.ndarray:
    """
    Convert a native value (scalar, nested list, ndarray) into a real array.

    Parameters
    ----------
    values : Any
        Source values.
    precision : Precision | str | dtype-like, optional
        Target precision. Defaults to the configured precision.

    Returns
    -------
    np.ndarray
        A freshly allocated, C-contiguous array of the precision's dtype with
        the same shape as `values`.
    """
    dt = _resolve(precision).dtype
    return np.array(values, dtype=dt, copy=True, order="C")


def to_real(value: Any, precision: Optional[Union[Precision, str, Any]] = None) -> np.floating:
    """
    Convert a native number into a scalar element.

    Parameters
    ----------
    value : Any
        A Python or NumPy number.
    precision : Precision | str | dtype-like, optional
        Target precision. Defaults to the configured precision.

    Returns
    -------
    np.floating
        The value as a `np.float32` or `np.float64` scalar.
    """
    return _resolve(precision).dtype.type(value)
