"""Parameterized model helpers"""

from __future__ import annotations

import functools
import inspect
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

import numpy as np

from .error import FitValidationError

if TYPE_CHECKING:
    from .typing import Curve, NDArray

__all__ = [
    "ParameterizedModel",
    "CurveModel",
    "curve_model",
    "parameter_count",
]


@runtime_checkable
class ParameterizedModel(Protocol):
    """A model that builds a curve ``x -> y`` from a parameter vector.

    Any callable with this signature can be fitted. Models may also declare
    their number of free parameters with an integer ``n_params`` attribute,
    which is used to size the default initial guess.
    """

    def __call__(self, params: NDArray) -> Curve: ...


class CurveModel:
    """Adapter exposing a function ``f(x, p0, p1, ...)`` as a parameterized model.

    Calling the model with a parameter vector returns the curve
    ``x -> f(x, *params)``.

    Parameters
    ----------
    func : callable
        Function of the independent variable followed by the parameters.
    n_params : int
        Number of parameters accepted after ``x``.
    """

    def __init__(self, func: Callable[..., float], n_params: int):
        if n_params < 1:
            raise ValueError(f"n_params must be at least 1, got {n_params}")
        self.func = func
        self.n_params = n_params
        self.name = getattr(func, "__name__", type(func).__name__)
        functools.update_wrapper(self, func)

    def __call__(self, params) -> Curve:
        params = tuple(np.asarray(params, dtype=float).ravel())
        if len(params) != self.n_params:
            raise ValueError(
                f"{self.name} expects {self.n_params} parameters, "
                f"got {len(params)}"
            )
        return functools.partial(self._evaluate, params=params)

    def _evaluate(self, x, params):
        return self.func(x, *params)

    def __repr__(self):
        return f"CurveModel({self.name}, n_params={self.n_params})"


def _count_parameters(func) -> int:
    sig = inspect.signature(func)
    positional = [
        p
        for p in sig.parameters.values()
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    if any(p.kind == p.VAR_POSITIONAL for p in sig.parameters.values()):
        raise ValueError(
            f"Cannot infer the parameter count of {func!r} from *args; "
            "pass n_params explicitly."
        )
    # The first positional argument is the independent variable
    return len(positional) - 1


def curve_model(func=None, *, n_params: int | None = None):
    """
    Decorator turning ``f(x, p0, p1, ...)`` into a parameterized model.

    Parameters
    ----------
    func : callable
        Function whose first argument is the independent variable and whose
        remaining positional arguments are the model parameters.
    n_params : int, optional
        Number of parameters. Inferred from the signature if omitted; required
        when the parameters are collected with ``*params``.

    Returns
    -------
    model : CurveModel
        Callable ``model(params) -> (x -> y)`` with ``n_params`` set.

    Examples
    --------
    >>> @curve_model
    ... def line(x, a, b):
    ...     return a * x + b
    >>> line.n_params
    2
    >>> line([2.0, 1.0])(3.0)
    7.0
    """
    if func is None:
        return functools.partial(curve_model, n_params=n_params)

    if n_params is None:
        n_params = _count_parameters(func)
    return CurveModel(func, n_params)


def parameter_count(model) -> int | None:
    """Return the declared parameter count of a model, or None if unknown."""
    n = getattr(model, "n_params", None)
    if n is None:
        return None
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)) or n < 1:
        raise FitValidationError(
            f"Model n_params must be a positive integer, got {n!r}"
        )
    return int(n)
