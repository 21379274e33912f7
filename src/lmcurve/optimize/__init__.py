"""Levenberg-Marquardt curve fitting"""
from ._align import AlignedModel, align, linear_alignment
from ._data import Dataset, as_dataset
from ._jacobian import jacobian
from ._lm import FitResult, FitStatus, fit, levenberg_marquardt
from ._options import FitOptions, as_options
from ._residual import error_calculation, predict, residuals
from ._step import step

__all__ = [
    "fit",
    "levenberg_marquardt",
    "FitResult",
    "FitStatus",
    "FitOptions",
    "as_options",
    "Dataset",
    "as_dataset",
    "predict",
    "residuals",
    "error_calculation",
    "jacobian",
    "step",
    "align",
    "linear_alignment",
    "AlignedModel",
]
