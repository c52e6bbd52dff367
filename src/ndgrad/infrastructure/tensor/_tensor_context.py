from typing import Any, Sequence
from dataclasses import dataclass, field

from ...domain._tensor import ITensor


@dataclass(eq=False)
class Context:
    """
    Record of one forward call made on a Function.

    A `Context` is appended to `Function.previous_inputs` by every forward
    call and removed again when the matching backward runs, so a function
    reused across mini-batches only retains the calls that are still
    unresolved.

    Attributes
    ----------
    inputs : Sequence[ITensor]
        The input tensors exactly as they were passed to `forward`. Backward
        accumulates into their `grad` buffers and decrements their
        `use_count`.
    saved_tensors : list[ITensor]
        Extra tensors kept for backward (e.g. the forward output).
    saved_meta : dict[str, Any]
        Non-tensor metadata required for backward (e.g. axes, constants).

    Notes
    -----
    Contexts compare by identity: two calls with equal inputs are still two
    distinct records.
    """

    inputs: Sequence["ITensor"]
    saved_tensors: list["ITensor"] = field(default_factory=list)
    saved_meta: dict[str, Any] = field(default_factory=dict)

    def save_for_backward(self, *tensors: "ITensor") -> None:
        """
        Save tensors for use during the backward computation.

        Parameters
        ----------
        *tensors : Tensor
            Any number of tensors to be stored in `saved_tensors`.
        """
        self.saved_tensors.extend(tensors)
