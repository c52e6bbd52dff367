"""
Concrete Function implementations shipped with ndgrad.

- elementwise arithmetic: `Add`, `AddConst`, `Sub`, `SubConst`, `ConstSub`,
  `Mul`, `MulConst`, `Div`, `DivConst`, `ConstDiv`, `Neg`
- trigonometric: `Sin`, `Cos`, `ArcTan`

Each class has a lowercase functional wrapper that builds a fresh instance
per call; `Tensor`'s arithmetic methods delegate to those wrappers.
"""

from ._basic_math import (
    Add,
    AddConst,
    ConstDiv,
    ConstSub,
    Div,
    DivConst,
    Mul,
    MulConst,
    Neg,
    Sub,
    SubConst,
    add,
    as_constant,
    div,
    mul,
    neg,
    sub,
)
from ._trigonometric import ArcTan, Cos, Sin, arctan, cos, sin

__all__ = [
    Add.__name__,
    AddConst.__name__,
    Sub.__name__,
    SubConst.__name__,
    ConstSub.__name__,
    Mul.__name__,
    MulConst.__name__,
    Div.__name__,
    DivConst.__name__,
    ConstDiv.__name__,
    Neg.__name__,
    Sin.__name__,
    Cos.__name__,
    ArcTan.__name__,
    add.__name__,
    sub.__name__,
    mul.__name__,
    div.__name__,
    neg.__name__,
    sin.__name__,
    cos.__name__,
    arctan.__name__,
    as_constant.__name__,
]
