from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from scipy import linalg

if TYPE_CHECKING:
    from lmcurve.typing import Model
    from ._data import Dataset

__all__ = [
    "predict",
    "residuals",
    "error_calculation",
]


def _evaluate(curve, xi) -> float:
    # Models built on the math module raise instead of returning inf
    try:
        return curve(xi)
    except ArithmeticError:
        return np.nan


def predict(model: Model, params: np.ndarray, x: np.ndarray) -> np.ndarray:
    """Evaluate the curve ``model(params)`` at every sample of ``x``.

    Samples where the model raises an ``ArithmeticError`` (overflow, division
    by zero) are NaN.
    """
    curve = model(params)
    return np.array([_evaluate(curve, xi) for xi in x], dtype=float)


def residuals(data: Dataset, params: np.ndarray, model: Model) -> np.ndarray:
    """Signed residuals ``y_i - model(params)(x_i)``."""
    return data.y - predict(model, params, data.x)


def error_calculation(data: Dataset, params: np.ndarray, model: Model) -> float:
    """
    Euclidean norm of the residual vector.

    Parameters
    ----------
    data : Dataset
        Observed samples
    params : ndarray, shape (n,)
        Candidate parameter vector
    model : callable
        Parameterized model ``model(params) -> (x -> y)``

    Returns
    -------
    error : float
        ``sqrt(sum_i (y_i - f(x_i))**2)``. NaN if any prediction is NaN or
        infinite, so that divergence can be detected by the caller.
    """
    r = residuals(data, params, model)
    if not np.all(np.isfinite(r)):
        return float("nan")
    return float(linalg.norm(r))
