from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from ._residual import predict

if TYPE_CHECKING:
    from lmcurve.typing import Model
    from ._data import Dataset

__all__ = ["jacobian"]


def jacobian(
    data: Dataset,
    params: np.ndarray,
    model: Model,
    gradient_difference: float,
    evaluated: np.ndarray | None = None,
) -> np.ndarray:
    """
    Forward-difference Jacobian of the model predictions.

    Parameters
    ----------
    data : Dataset
        Observed samples; only ``data.x`` is used
    params : ndarray, shape (n,)
        Base parameter vector
    model : callable
        Parameterized model ``model(params) -> (x -> y)``
    gradient_difference : float
        Step added to each parameter in turn. Must be positive.
    evaluated : ndarray, shape (m,), optional
        Model predictions at ``params``, if already available

    Returns
    -------
    J : ndarray, shape (m, n)
        ``J[i, k] = (f(p + d e_k)(x_i) - f(p)(x_i)) / d``
    """
    if not gradient_difference > 0:
        raise ValueError(
            f"gradient_difference must be a positive number, got {gradient_difference}"
        )

    params = np.asarray(params, dtype=float)
    if evaluated is None:
        evaluated = predict(model, params, data.x)

    n = params.size
    J = np.empty((data.size, n))
    for k in range(n):
        perturbed = params.copy()
        perturbed[k] += gradient_difference
        J[:, k] = (predict(model, perturbed, data.x) - evaluated) / gradient_difference

    return J
