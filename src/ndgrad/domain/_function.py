"""
Autograd function interface definitions.

This module defines the structural contract of a differentiable operation
instance. Unlike stateless `autograd.Function`-style designs, an ndgrad
function is a stateful node: the same instance is invoked once per
mini-batch, records every forward call in its own history, and replays the
matching record when one of its outputs is propagated backward.

A function may itself be a container of other functions (a stack). The
compositeness is structural; callers see one polymorphic unit either way.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from ._parameter import IParameter
from ._tensor import ITensor


@runtime_checkable
class IFunction(Protocol):
    """
    Differentiable operation interface.

    Notes
    -----
    - `forward` computes output data from input data only (never from
      gradients), stamps itself as the output's producer, appends the call
      to `previous_inputs` and increments each input's `use_count`.
    - `backward` receives an output whose `grad` has been filled by all of
      its consumers and accumulates (adds, never overwrites) each input's
      gradient contribution. It returns the inputs of the replayed call.
    """

    name: str

    @property
    def parameters(self) -> Sequence[IParameter]:
        """
        Return the learnable parameters registered by this function.

        Returns
        -------
        Sequence[IParameter]
            Named value/gradient pairs an optimizer may update.
        """
        ...

    @property
    def previous_inputs(self) -> Sequence[Any]:
        """
        Return the pending forward-call records, oldest first.

        Returns
        -------
        Sequence[Any]
            One record per forward call whose backward has not run yet.
        """
        ...

    def forward(self, *xs: ITensor) -> ITensor:
        """
        Run the operation and record the call for a later backward.

        Parameters
        ----------
        *xs : ITensor
            Input tensor(s).

        Returns
        -------
        ITensor
            The output tensor, with `producer` set to this function.
        """
        ...

    def backward(self, y: ITensor) -> tuple[ITensor, ...]:
        """
        Accumulate input gradients for the call that produced `y`.

        Parameters
        ----------
        y : ITensor
            An output of this function with a fully populated `grad`.

        Returns
        -------
        tuple[ITensor, ...]
            The inputs of the replayed forward call.
        """
        ...

    def predict(self, *xs: ITensor) -> ITensor:
        """
        Run the operation without recording any graph information.

        Parameters
        ----------
        *xs : ITensor
            Input tensor(s).

        Returns
        -------
        ITensor
            A leaf output tensor.
        """
        ...
