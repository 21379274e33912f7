from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from scipy.linalg import LinAlgError, cho_factor, cho_solve

from ._jacobian import jacobian
from ._residual import predict

if TYPE_CHECKING:
    from lmcurve.typing import Model
    from ._data import Dataset

__all__ = ["step"]

logger = logging.getLogger(__name__)


def _solve_damped(hess: np.ndarray, grad: np.ndarray, damping: float) -> np.ndarray:
    """
    Solve the damped normal equations ``(H + damping * I) delta = g``.

    Parameters
    ----------
    hess : ndarray, shape (n, n)
        Gauss-Newton Hessian approximation ``J.T @ J``
    grad : ndarray, shape (n,)
        ``J.T @ r``
    damping : float
        Levenberg-Marquardt damping parameter

    Returns
    -------
    delta : ndarray, shape (n,)
        Parameter increment, or all NaN if the system cannot be solved
    """
    n = len(grad)
    H_damped = hess + damping * np.eye(n)

    if not (np.all(np.isfinite(H_damped)) and np.all(np.isfinite(grad))):
        logger.debug("Non-finite damped normal equations; returning NaN step")
        return np.full(n, np.nan)

    try:
        # H + damping * I is symmetric positive definite for damping > 0
        c_and_lower = cho_factor(H_damped)
        return cho_solve(c_and_lower, grad)
    except LinAlgError:
        pass

    try:
        return np.linalg.solve(H_damped, grad)
    except np.linalg.LinAlgError:
        logger.debug("Singular damped normal equations; returning NaN step")
        return np.full(n, np.nan)


def step(
    data: Dataset,
    params: np.ndarray,
    damping: float,
    gradient_difference: float,
    model: Model,
) -> np.ndarray:
    """
    Compute one Levenberg-Marquardt update.

    Parameters
    ----------
    data : Dataset
        Observed samples
    params : ndarray, shape (n,)
        Current parameter vector
    damping : float
        Damping added to the diagonal of ``J.T @ J``. Must be positive.
    gradient_difference : float
        Forward-difference step used for the Jacobian
    model : callable
        Parameterized model ``model(params) -> (x -> y)``

    Returns
    -------
    new_params : ndarray, shape (n,)
        ``params + delta``. All NaN when the damped system is singular or
        non-finite.
    """
    if not damping > 0:
        raise ValueError(f"damping must be a positive number, got {damping}")

    params = np.asarray(params, dtype=float)

    # Diverging models yield inf/NaN here, which end up as a NaN step
    with np.errstate(invalid="ignore", over="ignore"):
        evaluated = predict(model, params, data.x)
        r = data.y - evaluated
        J = jacobian(data, params, model, gradient_difference, evaluated=evaluated)

        hess = J.T @ J
        grad = J.T @ r

        return params + _solve_damped(hess, grad, damping)
