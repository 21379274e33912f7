from __future__ import annotations

from typing import TYPE_CHECKING, Any

import numpy as np

from lmcurve import struct

if TYPE_CHECKING:
    from lmcurve.typing import ArrayLike, Curve, Model

__all__ = [
    "AlignedModel",
    "align",
    "linear_alignment",
]


def linear_alignment(
    data_min: float, data_max: float, fun_min: float, fun_max: float
) -> tuple[float, float]:
    """
    Coefficients of the affine map taking ``[fun_min, fun_max]`` onto
    ``[data_min, data_max]``.

    Returns
    -------
    a, b : float
        Scale and offset with ``a * fun_min + b == data_min`` and
        ``a * fun_max + b == data_max``. If ``fun_min == fun_max`` the scale
        is not finite (inf or NaN); no exception is raised.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        a = np.float64(data_min - data_max) / np.float64(fun_min - fun_max)
        b = data_max - a * fun_max
    return float(a), float(b)


@struct.frozen
class AlignedModel:
    """A model whose output is rescaled by a fixed affine map ``scale * y + offset``."""

    model: Model
    scale: float
    offset: float

    @property
    def n_params(self) -> Any:
        return getattr(self.model, "n_params", None)

    def __call__(self, params) -> Curve:
        curve = self.model(params)
        scale, offset = self.scale, self.offset

        def aligned(x):
            with np.errstate(invalid="ignore", over="ignore"):
                return scale * np.float64(curve(x)) + offset

        return aligned


def align(
    model: Model, data_min: float, data_max: float, sample_outputs: ArrayLike
) -> AlignedModel:
    """
    Wrap a model so that its output range matches the data range.

    Parameters
    ----------
    model : callable
        Parameterized model ``model(params) -> (x -> y)``
    data_min, data_max : float
        Range of the observed ``y`` values
    sample_outputs : array_like
        Predictions of ``model`` at the current parameters, one per sample.
        Their range defines the map.

    Returns
    -------
    aligned : AlignedModel
        Model producing ``a * model(params)(x) + b``, see
        :py:func:`linear_alignment`.
    """
    sample_outputs = np.asarray(sample_outputs, dtype=float)
    a, b = linear_alignment(
        data_min, data_max, np.min(sample_outputs), np.max(sample_outputs)
    )
    return AlignedModel(model, a, b)
