"""
Utilities for defining immutable value types and validated configuration.

Two building blocks are provided:

frozen : Decorator producing a frozen dataclass with a ``replace`` method.
    Used for value objects that are built once per fit and never mutated,
    such as the dataset and the aligned model wrapper.

Config : Pydantic base model for option sets.
    Used for the fit options, where field constraints and cross-field
    validation are needed before any computation takes place.
"""

from __future__ import annotations

import dataclasses
import functools
from collections.abc import Callable
from typing import TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing_extensions import dataclass_transform

__all__ = [
    "frozen",
    "Config",
]


T = TypeVar("T")


@dataclass_transform(frozen_default=True)
def frozen(cls: T | None = None, **kwargs) -> T | Callable:
    """
    Decorator to convert a class into a frozen dataclass.

    Parameters
    ----------
    cls : type, optional
        The class to convert. When omitted, a decorator accepting the class is
        returned so that keyword arguments can be forwarded.
    **kwargs : dict
        Additional keyword arguments passed to :py:func:`dataclasses.dataclass`.
        ``frozen`` defaults to True.

    Returns
    -------
    decorated_class : type
        The decorated class, now a frozen dataclass with a ``replace`` method.

    Notes
    -----
    Since the class is frozen, ``__post_init__`` hooks that normalize field
    values must use ``object.__setattr__``.

    Examples
    --------
    >>> @frozen
    ... class Interval:
    ...     lo: float
    ...     hi: float
    >>> Interval(0.0, 1.0).replace(hi=2.0)
    Interval(lo=0.0, hi=2.0)
    """
    # Support passing arguments to the decorator (e.g. @frozen(eq=False))
    if cls is None:
        return functools.partial(frozen, **kwargs)

    if "_lmcurve_struct" in cls.__dict__:
        return cls

    if "frozen" not in kwargs.keys():
        kwargs["frozen"] = True
    data_cls = dataclasses.dataclass(**kwargs)(cls)  # type: ignore

    def replace(self, **updates) -> T:
        """Returns a new object replacing the specified fields with new values."""
        new: T = dataclasses.replace(self, **updates)
        return new

    data_cls.replace = replace
    data_cls._lmcurve_struct = True  # type: ignore[attr-defined]

    return data_cls  # type: ignore


class Config(BaseModel):
    """
    Base class for validated, immutable option sets.

    Fields are declared with snake_case names and can also be populated by
    their camelCase alias, so ``{"gradientDifference": 0.1}`` and
    ``{"gradient_difference": 0.1}`` are equivalent. Unknown keys are
    rejected.
    """

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    def __repr__(self):
        fields = ", ".join(
            f"{name}={getattr(self, name)!r}" for name in type(self).model_fields
        )
        return f"{type(self).__name__}({fields})"
