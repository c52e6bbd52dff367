"""
Process-wide runtime configuration.

ndgrad keeps a single mutable `Config` record holding the defaults that
tensor construction and the backward traversal consult:

- `precision`: element precision used when a tensor is created without an
  explicit precision.
- `warn_on_dangling`: whether a backward pass reports non-leaf tensors whose
  use count never reached zero (see `DanglingGraphWarning`).

`using_config` temporarily overrides fields and restores them on exit, which
is what the test-suite uses to run the same checks in both precisions.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from typing import Any, Iterator, Union

from ._precision import Precision


@dataclass
class Config:
    """
    Mutable runtime defaults.

    Attributes
    ----------
    precision : Precision
        Default element precision. Defaults to `Precision.SINGLE`.
    warn_on_dangling : bool
        Emit `DanglingGraphWarning` after a backward pass that left non-leaf
        tensors with outstanding uses. Defaults to True.
    """

    precision: Precision = Precision.SINGLE
    warn_on_dangling: bool = True


_CONFIG = Config()


def get_config() -> Config:
    """
    Return the live configuration record.

    Returns
    -------
    Config
        The process-wide configuration (mutations take effect immediately).
    """
    return _CONFIG


def set_default_precision(precision: Union[Precision, str, Any]) -> None:
    """
    Set the precision used by tensors created without an explicit one.

    Parameters
    ----------
    precision : Precision | str | dtype-like
        New default, normalized through `Precision.from_any`.
    """
    _CONFIG.precision = Precision.from_any(precision)


def set_warn_on_dangling(flag: bool) -> None:
    """
    Enable or disable dangling-branch warnings after backward passes.

    Parameters
    ----------
    flag : bool
        New value for `Config.warn_on_dangling`.
    """
    _CONFIG.warn_on_dangling = bool(flag)


@contextmanager
def using_config(**overrides: Any) -> Iterator[Config]:
    """
    Temporarily override configuration fields.

    Parameters
    ----------
    **overrides
        Field names of `Config` mapped to their temporary values. `precision`
        accepts anything `Precision.from_any` accepts.

    Yields
    ------
    Config
        The live configuration with the overrides applied.

    Raises
    ------
    AttributeError
        If an override names a field that `Config` does not have.
    """
    known = {f.name for f in fields(Config)}
    for key in overrides:
        if key not in known:
            raise AttributeError(f"Config has no field {key!r}")

    saved = replace(_CONFIG)
    if "precision" in overrides:
        overrides["precision"] = Precision.from_any(overrides["precision"])
    for key, value in overrides.items():
        setattr(_CONFIG, key, value)
    try:
        yield _CONFIG
    finally:
        for f in fields(Config):
            setattr(_CONFIG, f.name, getattr(saved, f.name))
