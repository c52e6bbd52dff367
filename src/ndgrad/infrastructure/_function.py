"""
Stateful Function base classes.

This module contains the infrastructure-level implementations of the
`IFunction` contract:

- `Function`: abstract base that owns forward/backward dispatch, the pending
  call history (`previous_inputs`), use-count bookkeeping and parameter
  registration.
- `SingleInputFunction`, `DualInputFunction`, `NeedPreviousInputFunction`:
  variants that expose narrower hooks for one-input, two-input and
  "replay the original input" operations.
- `FunctionStack`: a composite that chains child functions and is used
  wherever a single function is expected.

Notes
-----
- A Function instance is reused across mini-batches. Each forward call
  appends a `Context` to its history and each backward call removes the
  matching one, so history only holds calls whose gradients are still owed.
- Backward hooks must *accumulate* into input gradients; several consumers
  of the same tensor each add their share.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Iterator, Optional, Sequence, Union

import numpy as np

from ..domain._errors import GraphError
from ..domain._function import IFunction
from ._parameter import Parameter
from .tensor._tensor import Tensor
from .tensor._tensor_context import Context


class Function(IFunction, ABC):
    """
    Abstract stateful differentiable operation.

    Subclasses normally derive from one of the variants below; deriving from
    `Function` directly means implementing `_forward` and `_backward`.

    Parameters
    ----------
    name : str, optional
        Display name. Defaults to the class name.

    Attributes
    ----------
    input_count : int
        Number of tensors `forward` accepts.
    """

    input_count: ClassVar[int] = 1

    def __init__(self, name: Optional[str] = None) -> None:
        self.name: str = name if name is not None else type(self).__name__
        self._parameters: list[Parameter] = []
        self._previous_inputs: list[Context] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def parameters(self) -> list[Parameter]:
        """
        Return the learnable parameters registered by this function.
        """
        return list(self._parameters)

    @property
    def previous_inputs(self) -> list[Context]:
        """
        Return the pending forward-call records, oldest first.
        """
        return list(self._previous_inputs)

    def register_parameter(
        self, name: str, value: Tensor, gradient: Optional[Tensor] = None
    ) -> Parameter:
        """
        Expose a tensor owned by this function as a trainable parameter.

        Parameters
        ----------
        name : str
            Short name (e.g. "W"); the parameter is named
            "<function name> <name>".
        value : Tensor
            Tensor holding the parameter values.
        gradient : Tensor, optional
            Separate gradient tensor. Defaults to `value.grad`.

        Returns
        -------
        Parameter
            The registered parameter.
        """
        p = Parameter(f"{self.name} {name}", value, gradient)
        self._parameters.append(p)
        return p

    def clear_history(self) -> None:
        """
        Drop every pending forward-call record.

        Use between unrelated passes, e.g. after a forward-only evaluation
        that was run through `forward` instead of `predict`.
        """
        self._previous_inputs.clear()

    def clear_gradients(self) -> None:
        """
        Clear the gradient of every registered parameter.
        """
        for p in self._parameters:
            p.clear_gradient()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def _check_inputs(self, xs: Sequence[Any]) -> None:
        if len(xs) != self.input_count:
            raise GraphError(
                f"{self.name} expects {self.input_count} input(s), got {len(xs)}"
            )
        for x in xs:
            if not isinstance(x, Tensor):
                raise TypeError(f"{self.name} expects Tensor inputs, got {type(x)!r}")

    def _make_output(self, values: Union[np.ndarray, Tensor], like: Tensor) -> Tensor:
        """
        Wrap hook output as a tensor laid out like `like`.

        Hooks may return a finished Tensor (when the output layout differs
        from the input) or a value array with `like`'s element count.
        """
        if isinstance(values, Tensor):
            return values
        return Tensor(
            values,
            shape=like.shape,
            batch_count=like.batch_count,
            name=f"{self.name} output",
            precision=like.dtype,
        )

    def forward(self, *xs: Tensor) -> Tensor:
        """
        Run the operation and record the call for a later backward.

        Parameters
        ----------
        *xs : Tensor
            Exactly `input_count` input tensors.

        Returns
        -------
        Tensor
            Output tensor with `producer` set to this function.

        Raises
        ------
        GraphError
            If the number of inputs differs from `input_count`.
        TypeError
            If an input is not a Tensor.
        ShapeMismatchError
            If the inputs violate the operation's shape requirements.
        """
        self._check_inputs(xs)
        ctx = Context(inputs=tuple(xs))
        y = self._forward(ctx, *xs)

        y.producer = self
        y._set_ctx(ctx)
        self._previous_inputs.append(ctx)
        for x in xs:
            x.use_count += 1
        return y

    def _pop_context(self, y: Tensor) -> Context:
        if not self._previous_inputs:
            raise GraphError(f"{self.name}.backward() called with no pending forward history")

        ctx = y._get_ctx()
        if ctx is None:
            return self._previous_inputs.pop()

        for i in range(len(self._previous_inputs) - 1, -1, -1):
            if self._previous_inputs[i] is ctx:
                return self._previous_inputs.pop(i)
        raise GraphError(
            f"{self.name}.backward() called for an output whose gradient was already propagated"
        )

    def backward(self, y: Tensor) -> tuple[Tensor, ...]:
        """
        Accumulate input gradients for the forward call that produced `y`.

        Parameters
        ----------
        y : Tensor
            An output of this function whose `grad` is complete.

        Returns
        -------
        tuple[Tensor, ...]
            The inputs of the replayed call, in forward order.

        Raises
        ------
        GraphError
            If there is no pending call to replay for `y`.
        """
        ctx = self._pop_context(y)
        for p in self._parameters:
            p.count_up()

        self._backward(ctx, y, *ctx.inputs)

        for x in ctx.inputs:
            x.use_count -= 1
        return tuple(ctx.inputs)

    def predict(self, *xs: Tensor) -> Tensor:
        """
        Run the operation without recording graph information.

        Returns
        -------
        Tensor
            A leaf output; inputs' use counts and this function's history are
            left untouched.
        """
        self._check_inputs(xs)
        return self._forward(Context(inputs=tuple(xs)), *xs)

    def __call__(self, *xs: Tensor) -> Tensor:
        return self.forward(*xs)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"

    @abstractmethod
    def _forward(self, ctx: Context, *xs: Tensor) -> Tensor:
        """
        Compute the output tensor (producer is stamped by the caller).
        """
        raise NotImplementedError

    @abstractmethod
    def _backward(self, ctx: Context, y: Tensor, *xs: Tensor) -> None:
        """
        Accumulate gradient contributions into the inputs' `grad` buffers.
        """
        raise NotImplementedError


class SingleInputFunction(Function):
    """
    One tensor in, one tensor out.

    Subclasses implement `single_forward(x)` returning the output values (or a
    finished Tensor) and `single_backward(y, x)` adding into `x.grad`.
    """

    input_count: ClassVar[int] = 1

    def _forward(self, ctx: Context, x: Tensor) -> Tensor:
        return self._make_output(self.single_forward(x), x)

    def _backward(self, ctx: Context, y: Tensor, x: Tensor) -> None:
        self.single_backward(y, x)

    @abstractmethod
    def single_forward(self, x: Tensor) -> Union[np.ndarray, Tensor]:
        raise NotImplementedError

    @abstractmethod
    def single_backward(self, y: Tensor, x: Tensor) -> None:
        raise NotImplementedError


class DualInputFunction(Function):
    """
    Two tensors in, one tensor out.

    Subclasses implement `dual_forward(a, b)` and `dual_backward(y, a, b)`.
    The output is laid out like `a` unless `dual_forward` returns a Tensor.
    """

    input_count: ClassVar[int] = 2

    def _forward(self, ctx: Context, a: Tensor, b: Tensor) -> Tensor:
        return self._make_output(self.dual_forward(a, b), a)

    def _backward(self, ctx: Context, y: Tensor, a: Tensor, b: Tensor) -> None:
        self.dual_backward(y, a, b)

    @abstractmethod
    def dual_forward(self, a: Tensor, b: Tensor) -> Union[np.ndarray, Tensor]:
        raise NotImplementedError

    @abstractmethod
    def dual_backward(self, y: Tensor, a: Tensor, b: Tensor) -> None:
        raise NotImplementedError


class NeedPreviousInputFunction(Function):
    """
    One-input function whose backward needs the original input values.

    `previous_backward(grad_y, x)` receives the output gradient and the input
    exactly as it was passed to forward. It returns the input gradient
    contribution, which the base class adds into `x.grad`, or None when there
    is nothing to propagate (e.g. an integer-index lookup whose only gradient
    is the function's own table).
    """

    input_count: ClassVar[int] = 1

    def _forward(self, ctx: Context, x: Tensor) -> Tensor:
        ctx.save_for_backward(x)
        return self._make_output(self.previous_forward(x), x)

    def _backward(self, ctx: Context, y: Tensor, x: Tensor) -> None:
        (previous,) = ctx.saved_tensors
        g = self.previous_backward(y.grad, previous)
        if g is not None:
            previous._accumulate_grad_(g)

    @abstractmethod
    def previous_forward(self, x: Tensor) -> Union[np.ndarray, Tensor]:
        raise NotImplementedError

    @abstractmethod
    def previous_backward(self, grad_y: np.ndarray, x: Tensor) -> Optional[np.ndarray]:
        raise NotImplementedError


class FunctionStack(IFunction):
    """
    Composite function running its children in sequence.

    Forward threads each child's output into the next child; backward replays
    the children in reverse order. Children stamp themselves as producers, so
    a graph traversal started downstream of the stack walks through the
    children individually.

    Parameters
    ----------
    *functions : IFunction
        Children in forward order.
    name : str, optional
        Display name. Defaults to "FunctionStack".
    """

    def __init__(self, *functions: IFunction, name: str = "FunctionStack") -> None:
        self.name: str = name
        self.functions: list[IFunction] = list(functions)

    def add(self, *functions: IFunction) -> "FunctionStack":
        """
        Append children and return `self`.
        """
        self.functions.extend(functions)
        return self

    @property
    def parameters(self) -> list[Parameter]:
        """
        Return the parameters of every child, in child order.
        """
        return [p for f in self.functions for p in f.parameters]

    @property
    def previous_inputs(self) -> list[Context]:
        """
        Return the first child's pending call records.
        """
        if not self.functions:
            return []
        return list(self.functions[0].previous_inputs)

    def forward(self, *xs: Tensor) -> Tensor:
        """
        Run every child in order and return the last output.

        Raises
        ------
        GraphError
            If the stack has no children.
        """
        if not self.functions:
            raise GraphError(f"{self.name} has no functions to run")
        y = self.functions[0].forward(*xs)
        for f in self.functions[1:]:
            y = f.forward(y)
        return y

    def backward(self, y: Tensor) -> tuple[Tensor, ...]:
        """
        Replay every child's backward in reverse order.

        Returns
        -------
        tuple[Tensor, ...]
            The inputs of the first child's replayed call.
        """
        if not self.functions:
            raise GraphError(f"{self.name} has no functions to run")
        outputs: tuple[Tensor, ...] = (y,)
        for f in reversed(self.functions):
            outputs = f.backward(outputs[0])
        return outputs

    def predict(self, *xs: Tensor) -> Tensor:
        if not self.functions:
            raise GraphError(f"{self.name} has no functions to run")
        y = self.functions[0].predict(*xs)
        for f in self.functions[1:]:
            y = f.predict(y)
        return y

    def clear_history(self) -> None:
        for f in self.functions:
            f.clear_history()

    def clear_gradients(self) -> None:
        for p in self.parameters:
            p.clear_gradient()

    def __call__(self, *xs: Tensor) -> Tensor:
        return self.forward(*xs)

    def __len__(self) -> int:
        return len(self.functions)

    def __iter__(self) -> Iterator[IFunction]:
        return iter(self.functions)

    def __getitem__(self, index: int) -> IFunction:
        return self.functions[index]

    def __repr__(self) -> str:
        inner = ", ".join(repr(f) for f in self.functions)
        return f"FunctionStack(name={self.name!r}, functions=[{inner}])"
